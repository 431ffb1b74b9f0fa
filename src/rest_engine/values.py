"""Decoded JSON values: classification, normalisation and nested access.

Decoded documents are plain Python values (``dict``, ``list``, ``str``,
``int``, ``float``, ``bool``, ``None``). :func:`kind_of` maps each of them
onto a closed set of kinds so comparison and normalisation branch on the
kind rather than on ad-hoc ``isinstance`` chains.
"""
from __future__ import annotations

import json
import math
from enum import Enum
from typing import Any

from src.shared.errors import FieldAccessError

INT64_MIN: int = -(2**63)
INT64_MAX: int = 2**63 - 1

NAN_TEXT: str = "NaN"
POS_INF_TEXT: str = "+Inf"
NEG_INF_TEXT: str = "-Inf"


class ValueKind(str, Enum):
    """Kinds of decoded JSON values."""
    NULL = "null"
    BOOL = "bool"
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"
    OTHER = "other"

    @property
    def is_number(self) -> bool:
        return self in (ValueKind.INTEGER, ValueKind.FLOAT)

    @property
    def is_composite(self) -> bool:
        return self in (ValueKind.ARRAY, ValueKind.OBJECT)


def kind_of(value: Any) -> ValueKind:
    """Classify *value*. ``bool`` is checked before ``int`` on purpose."""
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, int):
        return ValueKind.INTEGER
    if isinstance(value, float):
        return ValueKind.FLOAT
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, (list, tuple)):
        return ValueKind.ARRAY
    if isinstance(value, dict):
        return ValueKind.OBJECT
    return ValueKind.OTHER


def comparable_kind(value: Any) -> str:
    """Kind used for type-mismatch checks: integers and floats are one kind."""
    kind = kind_of(value)
    return "number" if kind.is_number else kind.value


def _float_text(value: float) -> str:
    if math.isnan(value):
        return NAN_TEXT
    return POS_INF_TEXT if value > 0 else NEG_INF_TEXT


def normalize(value: Any) -> Any:
    """Deep-copy *value* into a form safe to store in the observed state.

    Integers are kept, floats become integers when they are whole and fit in
    64 bits, NaN and infinities become text and anything that is not a JSON
    value is rendered with ``str``.
    """
    kind = kind_of(value)
    if kind is ValueKind.OBJECT:
        return {str(k): normalize(v) for k, v in value.items()}
    if kind is ValueKind.ARRAY:
        return [normalize(v) for v in value]
    if kind is ValueKind.FLOAT:
        if not math.isfinite(value):
            return _float_text(value)
        if value.is_integer() and INT64_MIN <= value <= INT64_MAX:
            return int(value)
        return value
    if kind is ValueKind.OTHER:
        return str(value)
    return value


def copy_json_value(value: Any) -> Any:
    """Deep-copy *value* keeping floats; NaN and infinities become text."""
    kind = kind_of(value)
    if kind is ValueKind.OBJECT:
        return {str(k): copy_json_value(v) for k, v in value.items()}
    if kind is ValueKind.ARRAY:
        return [copy_json_value(v) for v in value]
    if kind is ValueKind.FLOAT and not math.isfinite(value):
        return _float_text(value)
    if kind is ValueKind.OTHER:
        return str(value)
    return value


def generic_to_string(value: Any) -> str:
    """Render *value* for a path, query, header or cookie position."""
    kind = kind_of(value)
    if kind is ValueKind.STRING:
        return value
    if kind is ValueKind.NULL:
        return ""
    if kind is ValueKind.BOOL:
        return "true" if value else "false"
    if kind is ValueKind.INTEGER:
        return str(value)
    if kind is ValueKind.FLOAT:
        if not math.isfinite(value):
            return _float_text(value)
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if kind.is_composite:
        return json.dumps(copy_json_value(value), separators=(",", ":"))
    return str(value)


def get_nested_field(obj: Any, segments: list[str]) -> tuple[Any, bool]:
    """Look up *segments* in *obj*.

    Returns:
        ``(value, True)`` when found, ``(None, False)`` when a key is missing.

    Raises:
        FieldAccessError: if an intermediate value is not a dict.
    """
    current = obj
    for index, segment in enumerate(segments):
        if not isinstance(current, dict):
            walked = ".".join(segments[:index])
            raise FieldAccessError(
                f"{walked or '<root>'} is of type {type(current).__name__}, "
                "expected a document"
            )
        if segment not in current:
            return None, False
        current = current[segment]
    return current, True


def set_nested_field(obj: dict[str, Any], value: Any, segments: list[str]) -> None:
    """Write *value* at *segments*, creating intermediate documents.

    Raises:
        FieldAccessError: if an existing intermediate value is not a dict.
    """
    if not segments:
        raise FieldAccessError("cannot set a field at an empty path")
    current = obj
    for index, segment in enumerate(segments[:-1]):
        child = current.get(segment)
        if child is None:
            child = {}
            current[segment] = child
        elif not isinstance(child, dict):
            walked = ".".join(segments[: index + 1])
            raise FieldAccessError(
                f"value at {walked} is of type {type(child).__name__}, "
                "expected a document"
            )
        current = child
    current[segments[-1]] = value
