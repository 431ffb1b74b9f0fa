"""Custom exception classes for the REST invocation engine.

Every failure the engine surfaces derives from :class:`EngineError` so a
caller can catch the whole family at once, while the subclasses keep the
distinctions the reconciliation loop relies on (a search that found nothing
versus a call that failed versus a malformed definition).
"""
from __future__ import annotations

from http import HTTPStatus


class EngineError(Exception):
    """Base engine error."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class SchemaError(EngineError):
    """The OpenAPI document cannot answer a question about an operation."""

    def __init__(self, detail: str = "Schema error") -> None:
        super().__init__(detail=detail)


class OperationNotFoundError(SchemaError):
    """Path or HTTP method not declared in the OpenAPI document."""

    def __init__(self, detail: str = "Operation not found") -> None:
        super().__init__(detail=detail)


class MalformedPathError(SchemaError, ValueError):
    """A field path expression could not be parsed."""

    def __init__(self, detail: str = "Malformed path") -> None:
        super().__init__(detail=detail)


class RequestValidationError(EngineError):
    """A required parameter is missing from the request configuration."""

    def __init__(
        self,
        detail: str = "Request validation error",
        location: str = "",
        name: str = "",
    ) -> None:
        self.location = location
        self.name = name
        super().__init__(detail=detail)


class TransportError(EngineError):
    """The request could not be sent or the response could not be read."""

    def __init__(self, detail: str = "Transport error") -> None:
        super().__init__(detail=detail)


class StatusError(EngineError):
    """Response status code outside the operation's declared valid set."""

    def __init__(self, status_code: int, inner: Exception | None = None) -> None:
        self.status_code = status_code
        self.inner = inner
        if inner is not None:
            detail = f"unexpected status: {status_code}: {inner}"
        else:
            detail = f"unexpected status: {status_code}"
        super().__init__(detail=detail)
        self.__cause__ = inner


class ItemNotFoundError(StatusError):
    """A find-by search ended without a matching item."""

    def __init__(self, detail: str = "item not found") -> None:
        super().__init__(
            status_code=int(HTTPStatus.NOT_FOUND),
            inner=LookupError(detail),
        )


class DecodingError(EngineError):
    """Response body missing, undecodable or of an unexpected shape."""

    def __init__(self, detail: str = "Decoding error") -> None:
        super().__init__(detail=detail)


class TypeMismatchError(EngineError):
    """Two compared values have different kinds."""

    def __init__(self, detail: str = "Type mismatch", path: str = "") -> None:
        self.path = path
        super().__init__(detail=detail)


class FieldAccessError(EngineError):
    """A nested field lookup crossed a value that is not a document."""

    def __init__(self, detail: str = "Field access error") -> None:
        super().__init__(detail=detail)


class PaginationError(EngineError):
    """Pagination configuration is unsupported or incomplete."""

    def __init__(self, detail: str = "Pagination error") -> None:
        super().__init__(detail=detail)


class CallCancelledError(EngineError):
    """The caller cancelled the invocation."""

    def __init__(self, detail: str = "Call cancelled") -> None:
        super().__init__(detail=detail)


def has_status_error(exc: BaseException | None, *codes: int) -> bool:
    """Return True if *exc* is a :class:`StatusError` carrying any of *codes*."""
    if not isinstance(exc, StatusError):
        return False
    return exc.status_code in codes


def is_not_found_error(exc: BaseException | None) -> bool:
    """Return True for a 404 status error, including exhausted searches."""
    return has_status_error(exc, HTTPStatus.NOT_FOUND)
