"""Cursor pagination strategy selection.

Three strategies, cheapest first:

- ``SINGLE_QUERY``: one statement with ``LIMIT page_size + 1``; cursor values
  are read off the returned entities.
- ``CURSOR_PROJECTION``: one statement that also selects every order column,
  for orderings on joined fields that are not loaded onto the entities.
- ``KEYS_FIRST``: a ``DISTINCT`` key query picks the page, a second query
  loads the entities by key. Works for any join shape.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pagewise.core.pagination.classifier import JoinShape


class Strategy(StrEnum):
    """Execution strategy of a cursor page."""

    SINGLE_QUERY = "single_query"
    CURSOR_PROJECTION = "cursor_projection"
    KEYS_FIRST = "keys_first"


def select_strategy(shape: JoinShape) -> Strategy:
    """Pick the strategy for a join shape.

    The decision only depends on the flags, so the same query always runs
    the same way.
    """
    if (
        shape.cursor_fields_extractable
        and shape.unique_roots_safe
        and (not shape.has_base_eager_loads or not shape.has_to_many_eager_loads)
    ):
        return Strategy.SINGLE_QUERY

    if (
        not shape.has_base_eager_loads
        and shape.unique_roots_safe
        and not shape.cursor_fields_extractable
        and not shape.has_through_join_eager_loads
    ):
        return Strategy.CURSOR_PROJECTION

    return Strategy.KEYS_FIRST


__all__ = ["Strategy", "select_strategy"]
