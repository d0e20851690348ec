"""Pagination plans.

A plan is everything a strategy needs to run one cursor page: validated
request parameters, the normalized order, the statements and the loader
options split by when they can run. It is built once per call and never
modified.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from pagewise.core.database.dialects import NullOrdering
from pagewise.core.exceptions import InvalidDirectionError
from pagewise.core.pagination.classifier import JoinShape, classify
from pagewise.core.pagination.filters import KeysetField, KeysetFilter
from pagewise.core.pagination.order import (
    CursorDirection,
    OrderSpec,
    ensure_cursorable,
    ensure_no_base_order,
    normalize_order,
    order_tokens,
    reverse_order,
)
from pagewise.core.pagination.strategy import Strategy, select_strategy
from pagewise.core.pagination.utils import resolve_page_size

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from pagewise.core.pagination.cursor import CursorCodec
    from pagewise.core.query.composed import ComposedQuery
    from pagewise.core.query.join_graph import JoinGraph, TokenCache


@dataclass(frozen=True, slots=True)
class PreparedQuery:
    """Checks and derivations shared by cursor and offset pagination."""

    graph: JoinGraph
    primary_key: tuple[str, ...]
    order: OrderSpec


@dataclass(frozen=True, slots=True)
class PaginationPlan:
    """Immutable plan of one cursor page.

    Attributes:
        model: Root mapped class.
        primary_key: Root primary-key attribute names.
        page_size: Page size after applying the ceiling.
        direction: ``after`` or ``before``.
        order: Normalized order, already reversed for ``before`` pages.
        filtered_statement: Joins, filters and seek predicate; no order or limit.
        statement: ``filtered_statement`` ordered, limited to ``page_size + 1``.
        graph: Join graph of the query.
        shape: Join shape flags.
        strategy: Chosen execution strategy.
        base_options: Loader options of the base query.
        immediate_options: Through-join eager-loads (need the joins).
        deferred_options: Separate eager-loads (can run after the page is known).
        cursor_columns: Token → column to project; empty for ``SINGLE_QUERY``.
        null_ordering: Backend NULL placement.
    """

    model: type[Any]
    primary_key: tuple[str, ...]
    page_size: int
    direction: CursorDirection
    order: OrderSpec
    filtered_statement: Any
    statement: Any
    graph: JoinGraph
    shape: JoinShape
    strategy: Strategy
    base_options: tuple[Any, ...] = ()
    immediate_options: tuple[Any, ...] = ()
    deferred_options: tuple[Any, ...] = ()
    cursor_columns: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    null_ordering: NullOrdering | None = None

    @property
    def tokens(self) -> list[str]:
        return order_tokens(self.order)

    def describe(self) -> str:
        order = ", ".join(item.describe() for item in self.order)
        return (
            f"strategy={self.strategy.value} page_size={self.page_size} "
            f"direction={self.direction.value} order=[{order}] shape={self.shape} "
            f"graph=({self.graph.describe()})"
        )


def parse_direction(direction: Any) -> CursorDirection:
    """Validate a cursor direction.

    Raises:
        InvalidDirectionError: Unless ``direction`` is ``after`` or ``before``.
    """
    try:
        return CursorDirection(direction)
    except ValueError:
        raise InvalidDirectionError(direction) from None


def prepare_query(query: ComposedQuery, cache: TokenCache | None = None) -> PreparedQuery:
    """Reject unsupported queries, build the join graph and normalize the order."""
    ensure_no_base_order(query.statement)
    query.ensure_root_select()
    graph = query.join_graph(cache)
    primary_key = graph.root_primary_key()
    order = normalize_order(query.order_items, primary_key, model_name=query.model.__name__)
    return PreparedQuery(graph, primary_key, order)


def build_cursor_plan(
    session: AsyncSession,
    query: ComposedQuery,
    *,
    page_size: Any,
    max_page_size: Any = None,
    cursor: Any = None,
    direction: Any = CursorDirection.AFTER,
    codec: CursorCodec,
    null_ordering: NullOrdering | None = None,
    cache: TokenCache | None = None,
) -> PaginationPlan:
    """Validate a cursor request and plan its execution.

    Raises:
        PaginationConfigurationError: On invalid requests or queries.
        CursorError: If the cursor is malformed or built for another order.
    """
    page_size = resolve_page_size(page_size, max_page_size)
    direction = parse_direction(direction)

    prepared = prepare_query(query, cache)
    graph = prepared.graph
    order = prepared.order
    ensure_cursorable(order)
    if direction is CursorDirection.BEFORE:
        order = reverse_order(order)

    tokens = order_tokens(order)
    decoded = codec.decode(cursor) if cursor is not None else None
    if decoded is not None:
        codec.validate_matches_order(decoded, tokens)

    if null_ordering is None:
        null_ordering = NullOrdering.for_session(session)

    columns = {token: graph.resolve(token).attribute for token in tokens}

    filtered = query.filtered_statement(graph)
    if decoded is not None:
        keyset_fields = [KeysetField(item.token, columns[item.token], item.direction) for item in order]
        filtered = KeysetFilter(keyset_fields, decoded, null_ordering).apply(filtered)

    statement = filtered.order_by(
        *(item.direction.apply(columns[item.token]) for item in order)
    ).limit(page_size + 1)

    shape = classify(query, graph, order)
    strategy = select_strategy(shape)
    loaders = graph.loader_options()

    return PaginationPlan(
        model=query.model,
        primary_key=prepared.primary_key,
        page_size=page_size,
        direction=direction,
        order=order,
        filtered_statement=filtered,
        statement=statement,
        graph=graph,
        shape=shape,
        strategy=strategy,
        base_options=query.options,
        immediate_options=loaders.immediate,
        deferred_options=loaders.deferred,
        cursor_columns=MappingProxyType({} if strategy is Strategy.SINGLE_QUERY else columns),
        null_ordering=null_ordering,
    )


__all__ = ["PaginationPlan", "PreparedQuery", "build_cursor_plan", "parse_direction", "prepare_query"]
