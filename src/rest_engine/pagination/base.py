"""Paginator abstraction and factory."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable

import httpx

from src.shared.errors import PaginationError
from src.shared.models.descriptors import Pagination

logger = logging.getLogger(__name__)


class Paginator(ABC):
    """Drives the successive requests of one find-by search.

    A paginator lives for a single search: :meth:`init` is called once,
    then for every page :meth:`update_request` runs before the request is
    sent and :meth:`should_continue` after its response is read.
    """

    @abstractmethod
    def init(self) -> None:
        """Reset the cursor state for a new search."""

    @abstractmethod
    def update_request(self, request: httpx.Request) -> None:
        """Add the cursor of the next page to *request*."""

    @abstractmethod
    def should_continue(self, response: httpx.Response, body: bytes) -> bool:
        """Record the cursor found in *response* and say whether to go on."""


PaginatorFactory = Callable[[Pagination], Paginator]

_REGISTRY: dict[str, PaginatorFactory] = {}


def register_paginator(pagination_type: str, factory: PaginatorFactory) -> None:
    """Make *factory* available for descriptors declaring *pagination_type*."""
    _REGISTRY[pagination_type] = factory


def new_paginator(config: Pagination | None) -> Paginator | None:
    """Build the paginator a find-by descriptor asks for.

    Returns:
        None when *config* is None, meaning a single call.

    Raises:
        PaginationError: for an unsupported type or an incomplete block.
    """
    if config is None:
        return None
    factory = _REGISTRY.get(config.type)
    if factory is None:
        raise PaginationError(f"unsupported pagination type: {config.type}")
    logger.debug("Creating %s paginator", config.type)
    return factory(config)
