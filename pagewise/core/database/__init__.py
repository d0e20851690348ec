"""Database helpers.

``PaginatedRepository`` lives in ``pagewise.core.database.repository``.
"""

from pagewise.core.database.dialects import DEFAULT_NULL_ORDERING, NullOrdering, NullPosition

__all__ = ["DEFAULT_NULL_ORDERING", "NullOrdering", "NullPosition"]
