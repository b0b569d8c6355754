"""Utility modules."""

from app.utils.normalization import (
    escape_like_string,
    like_pattern,
    normalize_email,
    normalize_name,
)
from app.utils.pagination import (
    PaginatedResponse,
    PaginationParams,
    get_pagination,
    paginate_query,
)

__all__ = [
    # Normalization
    "escape_like_string",
    "like_pattern",
    "normalize_email",
    "normalize_name",
    # Pagination
    "PaginationParams",
    "PaginatedResponse",
    "get_pagination",
    "paginate_query",
]
