"""Query composition for paginated reads.

    from pagewise.core.query import ComposedQuery

    query = ComposedQuery(Article).join("author").order_by(("desc", "name@author"))
"""

from pagewise.core.query.join_graph import (
    AssociationNode,
    Cardinality,
    EagerLoadSplit,
    EagerLoadStrategy,
    JoinGraph,
    RawJoin,
    ResolvedField,
    TokenCache,
)
from pagewise.core.query.composed import FILTER_OPERATORS, ComposedQuery, parse_path

__all__ = [
    "FILTER_OPERATORS",
    "AssociationNode",
    "Cardinality",
    "ComposedQuery",
    "EagerLoadSplit",
    "EagerLoadStrategy",
    "JoinGraph",
    "RawJoin",
    "ResolvedField",
    "TokenCache",
    "parse_path",
]
