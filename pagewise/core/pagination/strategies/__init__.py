"""Cursor page execution strategies.

Each strategy module exposes ``run(plan, session)`` returning a ``PageRows``.
"""

from pagewise.core.pagination.strategies import cursor_projection, keys_first, single_query
from pagewise.core.pagination.strategies.base import PageRows

__all__ = ["PageRows", "cursor_projection", "keys_first", "single_query"]
