"""Continuation-token pagination.

The API returns an opaque token with each page; the token is sent back with
the next request until a page comes without one.
"""
from __future__ import annotations

import logging

import httpx

from src.shared.errors import PaginationError
from src.shared.models.descriptors import (
    ContinuationTokenConfig,
    Pagination,
    PaginationType,
)
from src.rest_engine.pagination.base import Paginator, register_paginator

logger = logging.getLogger(__name__)

TOKEN_IN_QUERY = "query"
TOKEN_IN_HEADER = "header"
TOKEN_IN_BODY = "body"


class ContinuationTokenPaginator(Paginator):
    """Paginator for the ``continuationToken`` strategy."""

    def __init__(self, config: ContinuationTokenConfig) -> None:
        self.config = config
        self.next_token = ""
        self.is_first_call = True

    def init(self) -> None:
        self.next_token = ""
        self.is_first_call = True

    def update_request(self, request: httpx.Request) -> None:
        # Nothing to add on the very first call or without a token.
        if self.is_first_call or not self.next_token:
            self.is_first_call = False
            return

        cfg = self.config.request
        if cfg.token_in == TOKEN_IN_QUERY:
            request.url = request.url.copy_set_param(cfg.token_path, self.next_token)
        elif cfg.token_in == TOKEN_IN_HEADER:
            request.headers[cfg.token_path] = self.next_token
        else:
            raise PaginationError(f"unsupported tokenIn for request: {cfg.token_in}")

    def should_continue(self, response: httpx.Response, body: bytes) -> bool:
        cfg = self.config.response
        if cfg.token_in == TOKEN_IN_HEADER:
            token = response.headers.get(cfg.token_path, "")
        elif cfg.token_in == TOKEN_IN_BODY:
            # TODO: read the token from the JSON body at cfg.token_path.
            token = ""
        else:
            raise PaginationError(f"unsupported tokenIn for response: {cfg.token_in}")

        if token:
            logger.debug("Continuation token received, fetching next page")
            self.next_token = token
            return True

        self.next_token = ""
        return False


def _from_pagination(config: Pagination) -> Paginator:
    if config.continuation_token is None:
        raise PaginationError(
            "pagination type is 'continuationToken' but the continuationToken "
            "config block is missing"
        )
    return ContinuationTokenPaginator(config.continuation_token)


register_paginator(PaginationType.CONTINUATION_TOKEN.value, _from_pagination)
