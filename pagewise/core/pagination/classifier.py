"""Join-shape classification.

A ``LIMIT`` on a joined statement limits SQL rows, not root entities. That is
only the same thing when every join is to-one all the way from the root.
The classifier inspects the join graph of a composed query and reports the
flags the strategy selector needs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from pagewise.core.query.join_graph import Cardinality, split_token

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pagewise.core.pagination.order import OrderField
    from pagewise.core.query.composed import ComposedQuery
    from pagewise.core.query.join_graph import JoinGraph


@dataclass(frozen=True, slots=True)
class JoinShape:
    """Flags describing a composed query.

    Attributes:
        unique_roots_safe: Every join is a to-one association reachable
            from the root, so each root appears in at most one SQL row.
        cursor_fields_extractable: Every order value can be read off the
            returned root entities.
        has_to_many_eager_loads: Some eagerly loaded association is to-many.
        has_through_join_eager_loads: Some association is eagerly loaded
            from its join.
        has_base_eager_loads: The base query carries its own loader options.
    """

    unique_roots_safe: bool
    cursor_fields_extractable: bool
    has_to_many_eager_loads: bool
    has_through_join_eager_loads: bool
    has_base_eager_loads: bool


def only_to_one_joins(query: ComposedQuery, graph: JoinGraph) -> bool:
    """Whether each join is to-one and its parent is known at every step."""
    if graph.raw_joins or query.base_has_joins():
        return False

    known = {0}
    for node in graph.joined_nodes():
        if node.parent_index not in known or node.cardinality is not Cardinality.ONE:
            return False
        known.add(node.index)
    return True


def cursor_fields_extractable(graph: JoinGraph, order: Iterable[OrderField]) -> bool:
    """Whether every order token is readable from the loaded entities.

    Root fields always are. ``field@assoc`` is readable when ``assoc`` is a
    to-one association of the root that is eagerly loaded. Nested tokens
    never are.
    """
    for item in order:
        if item.token is None:
            return False
        _field, assoc = split_token(item.token)
        if not assoc:
            continue
        if len(assoc) > 1:
            return False
        node = graph.root_association(assoc[0])
        if node is None or node.cardinality is not Cardinality.ONE or node.eager_load is None:
            return False
    return True


def classify(query: ComposedQuery, graph: JoinGraph, order: Iterable[OrderField]) -> JoinShape:
    """Compute the join shape of ``query``."""
    return JoinShape(
        unique_roots_safe=only_to_one_joins(query, graph),
        cursor_fields_extractable=cursor_fields_extractable(graph, order),
        has_to_many_eager_loads=graph.has_to_many_eager_loads,
        has_through_join_eager_loads=graph.has_through_join_eager_loads,
        has_base_eager_loads=query.has_base_eager_loads,
    )


__all__ = ["JoinShape", "classify", "cursor_fields_extractable", "only_to_one_joins"]
