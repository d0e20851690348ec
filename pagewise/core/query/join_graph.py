"""Join graph built from a composed query.

The graph records, for one pagination call, every association the query
touches: which ones are joined (and under which alias), their cardinality
and whether they are eagerly loaded and how. It answers the questions the
pagination engine asks:

- ``resolve(token)``: which column does ``"name@author"`` refer to?
- ``cardinality(path)``: can this association multiply root rows?
- ``eager_load(path)``: is it eagerly loaded, via a separate query or through
  the join itself?
- ``root_primary_key()``: which attributes identify a root row?

Tokens are ``field`` (root attribute), ``field@assoc`` (attribute of an
association found anywhere in the graph by name, which must be unambiguous)
or ``field@assoc@nested`` (attribute at an explicit path from the root).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import aliased, contains_eager, selectinload

from pagewise.core.exceptions import UnknownTokenError

Path = tuple[str, ...]


class Cardinality(StrEnum):
    """How many related rows an association resolves to."""

    ONE = "one"
    MANY = "many"


class EagerLoadStrategy(StrEnum):
    """How an eagerly loaded association is materialized."""

    SEPARATE = "separate"
    THROUGH_JOIN = "through_join"


@dataclass(slots=True)
class AssociationNode:
    """One association reachable from the root.

    Attributes:
        path: Association names from the root (``("comments", "author")``).
        source_model: Mapped class owning the association.
        target_model: Mapped class the association points to.
        cardinality: ``ONE`` for many-to-one/one-to-one, ``MANY`` otherwise.
        index: Join position (1-based, root is 0) or ``None`` if not joined.
        parent_index: Join position of the parent (0 for the root).
        alias: ``aliased(target_model)`` used in the join.
        outer: LEFT OUTER JOIN when ``True``.
        eager_load: Eager-load strategy, ``None`` when not eagerly loaded.
    """

    path: Path
    source_model: type[Any]
    target_model: type[Any]
    cardinality: Cardinality
    index: int | None = None
    parent_index: int | None = None
    alias: Any = None
    outer: bool = True
    eager_load: EagerLoadStrategy | None = None

    @property
    def name(self) -> str:
        return self.path[-1]

    @property
    def joined(self) -> bool:
        return self.index is not None


@dataclass(frozen=True, slots=True)
class RawJoin:
    """A join the graph cannot reason about (explicit target + ON clause)."""

    target: Any
    onclause: Any = None
    isouter: bool = False


@dataclass(frozen=True, slots=True)
class ResolvedField:
    """Result of resolving a token."""

    token: str
    attribute: Any
    entity: Any
    node: AssociationNode | None = None


@dataclass(frozen=True, slots=True)
class EagerLoadSplit:
    """Loader options split by when they can run.

    ``immediate`` options need the join graph of the statement they are
    attached to. ``deferred`` options only use separate queries and can be
    applied once the page's keys are known.
    """

    immediate: tuple[Any, ...] = ()
    deferred: tuple[Any, ...] = ()


class TokenCache:
    """Memo of token resolutions for the lifetime of one pagination call.

    The paginator creates one per call and drops it when the call returns,
    so nothing leaks between requests.
    """

    __slots__ = ("_entries", "hits", "misses")

    def __init__(self) -> None:
        self._entries: dict[str, ResolvedField] = {}
        self.hits = 0
        self.misses = 0

    def get_or_resolve(self, token: str, resolver: Callable[[str], ResolvedField]) -> ResolvedField:
        cached = self._entries.get(token)
        if cached is not None:
            self.hits += 1
            return cached
        self.misses += 1
        resolved = resolver(token)
        self._entries[token] = resolved
        return resolved

    def __len__(self) -> int:
        return len(self._entries)


def split_token(token: str) -> tuple[str, Path]:
    """Split ``field@assoc@nested`` into ``("field", ("assoc", "nested"))``."""
    parts = token.split("@")
    if any(part == "" for part in parts):
        raise UnknownTokenError(token, "expected 'field', 'field@assoc' or 'field@assoc@nested'")
    return parts[0], tuple(parts[1:])


class JoinGraph:
    """Association graph of one composed query.

    Build it with ``JoinGraph.build``; the graph is not modified afterwards.
    """

    def __init__(
        self,
        model: type[Any],
        nodes: dict[Path, AssociationNode],
        raw_joins: tuple[RawJoin, ...] = (),
        cache: TokenCache | None = None,
    ) -> None:
        self.model = model
        self._nodes = nodes
        self.raw_joins = raw_joins
        self.cache = cache if cache is not None else TokenCache()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def build(
        cls,
        model: type[Any],
        *,
        joins: Iterable[tuple[Path, bool]] = (),
        eager_loads: Iterable[tuple[Path, EagerLoadStrategy]] = (),
        tokens: Iterable[str] = (),
        raw_joins: Iterable[RawJoin] = (),
        cache: TokenCache | None = None,
    ) -> JoinGraph:
        """Build the graph.

        Args:
            model: Root mapped class.
            joins: ``(path, outer)`` association joins requested explicitly.
            eager_loads: ``(path, strategy)`` eager-load requests. Every prefix
                of the path is eagerly loaded too; ``THROUGH_JOIN`` wins over
                ``SEPARATE`` and joins the association.
            tokens: Field tokens used by filters and ordering. Associations
                they mention are joined (LEFT OUTER) if not joined already.
            raw_joins: Joins on arbitrary targets.
            cache: Per-call token cache.
        """
        builder = _GraphBuilder(model)
        for path, outer in joins:
            builder.join(path, outer=outer)
        for path, strategy in eager_loads:
            builder.eager_load(path, strategy)
        for token in tokens:
            _field, assoc = split_token(token)
            if assoc:
                builder.join(builder.path_for(assoc, token), outer=True)
        return cls(model, builder.nodes, tuple(raw_joins), cache)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> list[AssociationNode]:
        return list(self._nodes.values())

    def node(self, path: Path) -> AssociationNode:
        try:
            return self._nodes[path]
        except KeyError:
            raise UnknownTokenError("@".join(path), "association is not part of the query") from None

    def joined_nodes(self) -> list[AssociationNode]:
        """Joined associations in join order."""
        return sorted((n for n in self._nodes.values() if n.joined), key=lambda n: n.index or 0)

    def root_association(self, name: str) -> AssociationNode | None:
        return self._nodes.get((name,))

    def cardinality(self, path: Path) -> Cardinality:
        return self.node(path).cardinality

    def eager_load(self, path: Path) -> EagerLoadStrategy | None:
        node = self._nodes.get(path)
        return node.eager_load if node is not None else None

    def root_primary_key(self) -> tuple[str, ...]:
        """Attribute names of the root primary key, in key order."""
        mapper = sa_inspect(self.model)
        return tuple(mapper.get_property_by_column(column).key for column in mapper.primary_key)

    @property
    def has_to_many_eager_loads(self) -> bool:
        return any(
            n.eager_load is not None and n.cardinality is Cardinality.MANY for n in self._nodes.values()
        )

    @property
    def has_through_join_eager_loads(self) -> bool:
        return any(n.eager_load is EagerLoadStrategy.THROUGH_JOIN for n in self._nodes.values())

    # ------------------------------------------------------------------
    # Token resolution
    # ------------------------------------------------------------------

    def resolve(self, token: str) -> ResolvedField:
        """Resolve a token to the attribute it addresses.

        Raises:
            UnknownTokenError: If the field or association does not exist, the
                association is ambiguous or not joined, or the field is an
                association itself.
        """
        return self.cache.get_or_resolve(token, self._resolve)

    def _resolve(self, token: str) -> ResolvedField:
        field_name, assoc = split_token(token)
        if not assoc:
            return ResolvedField(token, _field_attribute(self.model, self.model, field_name, token), self.model)

        node = self.node(_path_for(self._nodes, assoc, token))
        if not node.joined:
            raise UnknownTokenError(token, f"association {'@'.join(node.path)!r} is not joined")
        attribute = _field_attribute(node.target_model, node.alias, field_name, token)
        return ResolvedField(token, attribute, node.alias, node)

    # ------------------------------------------------------------------
    # Statement helpers
    # ------------------------------------------------------------------

    def apply_joins(self, statement: Any) -> Any:
        """Add every joined association, then raw joins, to ``statement``."""
        for node in self.joined_nodes():
            parent = self.model if len(node.path) == 1 else self._nodes[node.path[:-1]].alias
            relationship = getattr(parent, node.name).of_type(node.alias)
            statement = statement.join(node.alias, relationship, isouter=node.outer)
        for raw in self.raw_joins:
            if raw.onclause is None:
                statement = statement.join(raw.target, isouter=raw.isouter)
            else:
                statement = statement.join(raw.target, raw.onclause, isouter=raw.isouter)
        return statement

    def loader_options(self) -> EagerLoadSplit:
        """Loader option chains for every eagerly loaded leaf association."""
        eager_paths = [path for path, node in self._nodes.items() if node.eager_load is not None]
        leaves = [
            path
            for path in eager_paths
            if not any(len(other) > len(path) and other[: len(path)] == path for other in eager_paths)
        ]

        immediate: list[Any] = []
        deferred: list[Any] = []
        for path in leaves:
            option, needs_join = self._loader_chain(path)
            (immediate if needs_join else deferred).append(option)
        return EagerLoadSplit(tuple(immediate), tuple(deferred))

    def _loader_chain(self, path: Path) -> tuple[Any, bool]:
        option: Any = None
        needs_join = False
        parent_entity: Any = self.model
        for depth in range(1, len(path) + 1):
            node = self._nodes[path[:depth]]
            attribute = getattr(parent_entity, node.name)
            if node.eager_load is EagerLoadStrategy.THROUGH_JOIN:
                target = attribute.of_type(node.alias)
                option = contains_eager(target) if option is None else option.contains_eager(target)
                parent_entity = node.alias
                needs_join = True
            else:
                option = selectinload(attribute) if option is None else option.selectinload(attribute)
                parent_entity = node.target_model
        return option, needs_join

    def describe(self) -> str:
        joined = ", ".join(
            f"{'@'.join(n.path)}[{n.cardinality.value}{',outer' if n.outer else ''}]"
            for n in self.joined_nodes()
        )
        eager = ", ".join(
            f"{'@'.join(n.path)}:{n.eager_load.value}" for n in self._nodes.values() if n.eager_load
        )
        return f"{self.model.__name__} joins=[{joined}] raw={len(self.raw_joins)} eager=[{eager}]"


class _GraphBuilder:
    def __init__(self, model: type[Any]) -> None:
        self.model = model
        self.nodes: dict[Path, AssociationNode] = {}
        self._next_index = 1

    def path_for(self, assoc: Path, token: str) -> Path:
        return _path_for(self.nodes, assoc, token)

    def ensure(self, path: Path) -> AssociationNode:
        node: AssociationNode | None = None
        source_model = self.model
        for depth in range(1, len(path) + 1):
            prefix = path[:depth]
            node = self.nodes.get(prefix)
            if node is None:
                relationship = sa_inspect(source_model).relationships.get(prefix[-1])
                if relationship is None:
                    raise UnknownTokenError(
                        "@".join(prefix), f"{source_model.__name__} has no association {prefix[-1]!r}"
                    )
                node = AssociationNode(
                    path=prefix,
                    source_model=source_model,
                    target_model=relationship.mapper.class_,
                    cardinality=Cardinality.MANY if relationship.uselist else Cardinality.ONE,
                )
                self.nodes[prefix] = node
            source_model = node.target_model
        assert node is not None
        return node

    def join(self, path: Path, *, outer: bool) -> None:
        self.ensure(path)
        for depth in range(1, len(path) + 1):
            node = self.nodes[path[:depth]]
            if node.joined:
                node.outer = node.outer and outer
                continue
            node.index = self._next_index
            self._next_index += 1
            node.parent_index = 0 if depth == 1 else self.nodes[path[: depth - 1]].index
            node.alias = aliased(node.target_model)
            node.outer = outer

    def eager_load(self, path: Path, strategy: EagerLoadStrategy) -> None:
        self.ensure(path)
        for depth in range(1, len(path) + 1):
            node = self.nodes[path[:depth]]
            if strategy is EagerLoadStrategy.THROUGH_JOIN or node.eager_load is None:
                node.eager_load = strategy
        if strategy is EagerLoadStrategy.THROUGH_JOIN:
            self.join(path, outer=True)


def _path_for(nodes: dict[Path, AssociationNode], assoc: Path, token: str) -> Path:
    if len(assoc) > 1:
        return assoc
    matches = [path for path in nodes if path[-1] == assoc[0]]
    if len(matches) > 1:
        options = ", ".join(sorted("@".join(path) for path in matches))
        raise UnknownTokenError(
            token, f"association {assoc[0]!r} is ambiguous ({options}); use a full-path token"
        )
    return matches[0] if matches else assoc


def _field_attribute(model: type[Any], entity: Any, field_name: str, token: str) -> Any:
    mapper = sa_inspect(model)
    if field_name in mapper.relationships:
        raise UnknownTokenError(token, f"{field_name!r} is an association, not a field")
    if field_name not in mapper.all_orm_descriptors:
        raise UnknownTokenError(token, f"{model.__name__} has no field {field_name!r}")
    return getattr(entity, field_name)


__all__ = [
    "AssociationNode",
    "Cardinality",
    "EagerLoadSplit",
    "EagerLoadStrategy",
    "JoinGraph",
    "Path",
    "RawJoin",
    "ResolvedField",
    "TokenCache",
    "split_token",
]
