"""Per-call data models: what an operation requires and what is sent."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from src.shared.constants import PENDING_STATUS_CODES
from src.shared.models.descriptors import APIAction, RequestFieldMappingItem


@dataclass(frozen=True)
class RequestedParams:
    """Parameter and body property names an operation declares."""
    path: frozenset[str] = frozenset()
    query: frozenset[str] = frozenset()
    headers: frozenset[str] = frozenset()
    cookies: frozenset[str] = frozenset()
    body: frozenset[str] = frozenset()


@dataclass(frozen=True)
class CallInfo:
    """Everything known about one call before its values are resolved."""
    path: str
    method: str
    action: APIAction
    req_params: RequestedParams = field(default_factory=RequestedParams)
    identifier_fields: tuple[str, ...] = ()
    request_field_mapping: tuple[RequestFieldMappingItem, ...] = ()


@dataclass
class RequestConfiguration:
    """Resolved values for one request.

    ``parameters`` holds path parameters. ``body`` is always a dict, empty
    when nothing is sent.
    """
    method: str = "GET"
    parameters: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)
    body: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Response:
    """Decoded outcome of a successful call."""
    body: Any = None
    status_code: int = 0

    def is_pending(self) -> bool:
        """True when the API accepted the request but has not finished it."""
        return self.status_code in PENDING_STATUS_CODES


@dataclass(frozen=True)
class Reason:
    """Why a comparison found the two sides different."""
    text: str
    first_value: Any = None
    second_value: Any = None


@dataclass(frozen=True)
class ComparisonResult:
    """Outcome of a drift comparison."""
    is_equal: bool
    reason: Reason | None = None

    def __str__(self) -> str:
        if self.is_equal:
            return "ComparisonResult: is_equal=True"
        if self.reason is None:
            return "ComparisonResult: is_equal=False, reason=None"
        return (
            f"ComparisonResult: is_equal=False, reason={self.reason.text}, "
            f"first_value={self.reason.first_value!r}, "
            f"second_value={self.reason.second_value!r}"
        )
