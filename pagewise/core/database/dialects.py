"""Backend NULL-ordering defaults.

Databases disagree on where NULLs go when an ORDER BY does not say
``NULLS FIRST`` / ``NULLS LAST``. PostgreSQL and Oracle treat NULL as larger
than any value (ascending puts NULLs last), while SQLite, MySQL, MariaDB and
SQL Server treat it as smaller (ascending puts NULLs first).

The keyset filter needs to know the effective placement to build a correct
seek predicate, so the lookup is a small injectable table instead of branches
inside the filter builder:

    ordering = NullOrdering.for_session(session)
    ordering.default_position("asc")  # NullPosition.FIRST on SQLite
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING

from pagewise.core.exceptions import UnsupportedBackendError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class NullPosition(StrEnum):
    """Where NULLs sort relative to non-NULL values."""

    FIRST = "first"
    LAST = "last"


_NULLS_LARGEST = MappingProxyType({"asc": NullPosition.LAST, "desc": NullPosition.FIRST})
_NULLS_SMALLEST = MappingProxyType({"asc": NullPosition.FIRST, "desc": NullPosition.LAST})

DEFAULT_NULL_ORDERING: Mapping[str, Mapping[str, NullPosition]] = MappingProxyType(
    {
        "postgresql": _NULLS_LARGEST,
        "oracle": _NULLS_LARGEST,
        "sqlite": _NULLS_SMALLEST,
        "mysql": _NULLS_SMALLEST,
        "mariadb": _NULLS_SMALLEST,
        "mssql": _NULLS_SMALLEST,
    }
)


@dataclass(frozen=True, slots=True)
class NullOrdering:
    """Default NULL placement for one backend.

    Attributes:
        backend: SQLAlchemy dialect name (``session.get_bind().dialect.name``).
        table: backend → direction → position lookup. Override to support
            other backends or to pin a behaviour in tests.
    """

    backend: str
    table: Mapping[str, Mapping[str, NullPosition]] = field(default_factory=lambda: DEFAULT_NULL_ORDERING)

    @classmethod
    def for_session(
        cls,
        session: AsyncSession,
        table: Mapping[str, Mapping[str, NullPosition]] | None = None,
    ) -> NullOrdering:
        """Build the lookup for the backend a session is bound to."""
        backend = session.get_bind().dialect.name
        return cls(backend, table if table is not None else DEFAULT_NULL_ORDERING)

    def default_position(self, direction: str) -> NullPosition:
        """Position of NULLs for a plain ``asc``/``desc`` ORDER BY.

        Raises:
            UnsupportedBackendError: If the backend is not in the table.
        """
        try:
            return self.table[self.backend][direction]
        except KeyError:
            raise UnsupportedBackendError(self.backend, direction) from None


__all__ = ["DEFAULT_NULL_ORDERING", "NullOrdering", "NullPosition"]
