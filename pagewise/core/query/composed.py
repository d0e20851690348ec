"""Composed queries.

``ComposedQuery`` wraps a root model and a base ``select()`` and records the
parts of the query that pagination has to understand: association joins,
filters on association fields, ordering and eager-loads. Like SQLAlchemy's
own ``Select`` it is generative: every method returns a new query.

Example:
    query = (
        ComposedQuery(Article, select(Article).where(Article.published.is_(True)))
        .join("author")
        .where_field("name@author", "like", "A%")
        .order_by(("desc", "published_at"), ("asc", "name@author"))
        .preload("comments")
    )

The base statement must select the root entity only and must not carry
``ORDER BY`` or loader options; pass loader options through ``options=`` so
that key-only queries can leave them out.
"""

from __future__ import annotations

import operator
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from sqlalchemy import Join, select

from pagewise.core.exceptions import (
    CustomSelectError,
    PaginationConfigurationError,
    UnsupportedOrderFieldError,
)
from pagewise.core.pagination.order import OrderField, coerce_order_item
from pagewise.core.query.join_graph import (
    EagerLoadStrategy,
    JoinGraph,
    Path,
    RawJoin,
    TokenCache,
)

FILTER_OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "==": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
    "in": lambda column, value: column.in_(value),
    "not_in": lambda column, value: column.not_in(value),
    "like": lambda column, value: column.like(value),
    "ilike": lambda column, value: column.ilike(value),
    "is_null": lambda column, _value: column.is_(None),
    "is_not_null": lambda column, _value: column.is_not(None),
}


def parse_path(path: str | Sequence[str]) -> Path:
    """``"comments.author"`` or ``("comments", "author")`` → tuple path."""
    parts = tuple(path.split(".")) if isinstance(path, str) else tuple(path)
    if not parts or any(not part for part in parts):
        raise PaginationConfigurationError(f"invalid association path {path!r}")
    return parts


class ComposedQuery:
    """A root-entity query whose joins, ordering and eager-loads are known."""

    __slots__ = (
        "_eager_loads",
        "_filters",
        "_joins",
        "_order",
        "_raw_joins",
        "_token_filters",
        "model",
        "options",
        "statement",
    )

    def __init__(
        self,
        model: type[Any],
        statement: Any = None,
        *,
        options: Iterable[Any] = (),
    ) -> None:
        """Initialize a composed query.

        Args:
            model: Root mapped class.
            statement: Base ``select(model)`` with filters; defaults to
                ``select(model)``.
            options: Loader options that belong to the base query. They are
                opaque to the pagination engine.
        """
        self.model = model
        self.statement = statement if statement is not None else select(model)
        self.options: tuple[Any, ...] = tuple(options)
        self._filters: tuple[Any, ...] = ()
        self._token_filters: tuple[tuple[str, str, Any], ...] = ()
        self._joins: tuple[tuple[Path, bool], ...] = ()
        self._raw_joins: tuple[RawJoin, ...] = ()
        self._order: tuple[OrderField, ...] = ()
        self._eager_loads: tuple[tuple[Path, EagerLoadStrategy], ...] = ()

    def _clone(self, **changes: Any) -> ComposedQuery:
        clone = ComposedQuery.__new__(ComposedQuery)
        for slot in ComposedQuery.__slots__:
            setattr(clone, slot, changes.get(slot, getattr(self, slot)))
        return clone

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def where(self, *criteria: Any) -> ComposedQuery:
        """Add raw SQLAlchemy criteria (root columns or raw-join targets)."""
        return self._clone(_filters=self._filters + criteria)

    def where_field(self, token: str, op: str, value: Any = None) -> ComposedQuery:
        """Filter on a token, joining the association it mentions.

        Args:
            token: ``field`` or ``field@assoc``.
            op: One of ``FILTER_OPERATORS``.
            value: Right-hand side (ignored by ``is_null``/``is_not_null``).
        """
        if op not in FILTER_OPERATORS:
            raise PaginationConfigurationError(
                f"unknown filter operator {op!r}; expected one of {sorted(FILTER_OPERATORS)}"
            )
        return self._clone(_token_filters=(*self._token_filters, (token, op, value)))

    def join(self, path: str | Sequence[str], *, outer: bool = False) -> ComposedQuery:
        """Join an association path (``"author"``, ``"comments.author"``)."""
        return self._clone(_joins=(*self._joins, (parse_path(path), outer)))

    def outerjoin(self, path: str | Sequence[str]) -> ComposedQuery:
        return self.join(path, outer=True)

    def join_raw(self, target: Any, onclause: Any = None, *, isouter: bool = False) -> ComposedQuery:
        """Join an arbitrary target. The engine treats such joins as unsafe."""
        return self._clone(_raw_joins=(*self._raw_joins, RawJoin(target, onclause, isouter)))

    def order_by(self, *items: Any) -> ComposedQuery:
        """Append order items: ``("desc", "title")``, ``"title"``, ``("asc", expr)``."""
        return self._clone(_order=self._order + tuple(coerce_order_item(item) for item in items))

    def preload(
        self,
        path: str | Sequence[str],
        *,
        strategy: EagerLoadStrategy | str = EagerLoadStrategy.SEPARATE,
    ) -> ComposedQuery:
        """Eagerly load an association path."""
        try:
            strategy = EagerLoadStrategy(strategy)
        except ValueError:
            raise PaginationConfigurationError(
                f"unknown eager-load strategy {strategy!r}; expected 'separate' or 'through_join'"
            ) from None
        return self._clone(_eager_loads=(*self._eager_loads, (parse_path(path), strategy)))

    def preload_through_join(self, path: str | Sequence[str]) -> ComposedQuery:
        """Eagerly load an association from the join used to filter/order it."""
        return self.preload(path, strategy=EagerLoadStrategy.THROUGH_JOIN)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def order_items(self) -> tuple[OrderField, ...]:
        return self._order

    @property
    def has_base_eager_loads(self) -> bool:
        return bool(self.options)

    @property
    def has_raw_joins(self) -> bool:
        return bool(self._raw_joins)

    def base_has_joins(self) -> bool:
        """Whether the base statement joins (or implicitly selects from) other tables."""
        froms = self.statement.get_final_froms()
        return len(froms) > 1 or any(isinstance(from_, Join) for from_ in froms)

    def ensure_root_select(self) -> None:
        """Reject statements that select anything but the root entity.

        Raises:
            CustomSelectError: On custom columns or a different entity.
            PaginationConfigurationError: If the statement carries loader options.
        """
        descriptions = self.statement.column_descriptions
        if len(descriptions) != 1 or descriptions[0].get("expr") is not self.model:
            raise CustomSelectError([str(d.get("name")) for d in descriptions])
        if getattr(self.statement, "_with_options", ()):
            raise PaginationConfigurationError(
                "loader options on the base statement are not supported; "
                "pass them as ComposedQuery(..., options=[...])"
            )

    def tokens(self) -> list[str]:
        """Field tokens used by filters and ordering."""
        tokens = [token for token, _op, _value in self._token_filters]
        tokens.extend(item.token for item in self._order if item.token is not None)
        return tokens

    def join_graph(self, cache: TokenCache | None = None) -> JoinGraph:
        """Build the join graph for this query."""
        return JoinGraph.build(
            self.model,
            joins=self._joins,
            eager_loads=self._eager_loads,
            tokens=self.tokens(),
            raw_joins=self._raw_joins,
            cache=cache,
        )

    def filtered_statement(self, graph: JoinGraph) -> Any:
        """Base statement with joins and every filter applied, unordered."""
        statement = graph.apply_joins(self.statement)
        if self._filters:
            statement = statement.where(*self._filters)
        for token, op, value in self._token_filters:
            column = graph.resolve(token).attribute
            statement = statement.where(FILTER_OPERATORS[op](column, value))
        return statement

    def order_columns(self, graph: JoinGraph, order: Iterable[OrderField]) -> list[Any]:
        """Column (or expression) addressed by each order field."""
        columns = []
        for item in order:
            if item.token is not None:
                columns.append(graph.resolve(item.token).attribute)
            elif item.expression is not None:
                columns.append(item.expression)
            else:
                raise UnsupportedOrderFieldError("order field has neither token nor expression")
        return columns

    def __repr__(self) -> str:
        order = ", ".join(item.describe() for item in self._order)
        return f"ComposedQuery({self.model.__name__}, order=[{order}])"


__all__ = ["FILTER_OPERATORS", "ComposedQuery", "parse_path"]
