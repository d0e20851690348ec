"""Result type shared by the strategies."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class PageRows:
    """Entries of a page plus the cursor values of its boundary rows.

    Attributes:
        entries: Root entities in forward order.
        has_more: Whether rows exist beyond the page in the requested direction.
        first_values: Cursor values of the first entry, ``None`` if empty.
        last_values: Cursor values of the last entry, ``None`` if empty.
    """

    entries: list[Any] = field(default_factory=list)
    has_more: bool = False
    first_values: dict[str, Any] | None = None
    last_values: dict[str, Any] | None = None
