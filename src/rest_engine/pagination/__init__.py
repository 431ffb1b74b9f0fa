"""Pagination strategies for find-by searches."""

from src.rest_engine.pagination.base import Paginator, new_paginator, register_paginator
from src.rest_engine.pagination.continuation_token import ContinuationTokenPaginator

__all__ = [
    "ContinuationTokenPaginator",
    "Paginator",
    "new_paginator",
    "register_paginator",
]
