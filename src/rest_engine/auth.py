"""Authentication callbacks.

A callback receives each outgoing :class:`httpx.Request` after validation
and before it is sent, and adds the credential to it.
"""
from __future__ import annotations

from collections.abc import Callable
from enum import Enum

import httpx

AuthCallback = Callable[[httpx.Request], None]


class AuthType(str, Enum):
    """Supported credential kinds."""
    BASIC = "basic"
    BEARER = "bearer"


def to_auth_type(value: str) -> AuthType:
    """Parse an auth type name.

    Raises:
        ValueError: for an unknown name.
    """
    try:
        return AuthType(value)
    except ValueError:
        raise ValueError(f"unknown auth type: {value}") from None


def basic_auth(username: str, password: str) -> AuthCallback:
    """Callback setting an HTTP Basic ``Authorization`` header."""
    auth = httpx.BasicAuth(username, password)

    def set_auth(request: httpx.Request) -> None:
        # BasicAuth is a single-step flow; the first yield is the signed request.
        next(auth.auth_flow(request))

    return set_auth


def bearer_auth(token: str) -> AuthCallback:
    """Callback setting a ``Bearer`` ``Authorization`` header."""

    def set_auth(request: httpx.Request) -> None:
        request.headers["Authorization"] = f"Bearer {token}"

    return set_auth
