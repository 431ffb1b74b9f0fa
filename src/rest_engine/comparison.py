"""Drift comparison between desired fields and an observed API item.

Only keys present on both sides are compared: the observed item usually
carries server-populated data the user never specified, and a desired field
the API does not echo back cannot be judged.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from src.shared.errors import TypeMismatchError
from src.shared.models.calls import ComparisonResult, Reason
from src.rest_engine.pathparsing import join_path
from src.rest_engine.values import ValueKind, comparable_kind, kind_of

logger = logging.getLogger(__name__)

_EQUAL = ComparisonResult(is_equal=True)


def compare_existing(
    desired: Mapping[str, Any],
    observed: Mapping[str, Any],
    path: Sequence[str] = (),
) -> ComparisonResult:
    """Compare every key of *desired* that *observed* also holds.

    The first difference stops the walk and is reported in the result's
    reason. Arrays are compared index by index over the desired elements, so
    order matters and extra observed elements are ignored; objects nested
    inside arrays use the same present-on-both-sides rule.

    Args:
        desired: The resource's desired fields (usually ``spec``).
        observed: The matched API item.
        path: Location of the two mappings, used in error messages.

    Returns:
        A :class:`ComparisonResult`.

    Raises:
        TypeMismatchError: if a compared key holds values of different kinds.
    """
    for key, value in desired.items():
        current = [*path, key]
        if key not in observed:
            logger.debug("Key %s not observed, skipping", join_path(current))
            continue
        result = _compare_values(value, observed[key], current)
        if not result.is_equal:
            return result
    return _EQUAL


def _compare_values(first: Any, second: Any, path: list[str]) -> ComparisonResult:
    if first is None or second is None:
        if first is None and second is None:
            return _EQUAL
        return _differ("values differ (one is null)", first, second)

    _check_kinds(first, second, path)
    kind = kind_of(first)

    if kind is ValueKind.OBJECT:
        nested = compare_existing(first, second, path)
        if not nested.is_equal:
            return _differ("values differ", first, second)
        return _EQUAL

    if kind is ValueKind.ARRAY:
        # Extra observed elements are server-populated and ignored.
        if len(first) > len(second):
            return _differ("arrays differ in length", first, second)
        for index, left in enumerate(first):
            right = second[index]
            item = _compare_values(left, right, [*path, str(index)])
            if not item.is_equal:
                return _differ("values differ", first, second)
        return _EQUAL

    if first != second:
        return _differ("values differ", first, second)
    return _EQUAL


def _check_kinds(first: Any, second: Any, path: list[str]) -> None:
    first_kind = comparable_kind(first)
    second_kind = comparable_kind(second)
    if first_kind != second_kind:
        where = join_path(path)
        raise TypeMismatchError(
            f"type mismatch at {where}: {first_kind} vs {second_kind}",
            path=where,
        )


def _differ(text: str, first: Any, second: Any) -> ComparisonResult:
    return ComparisonResult(
        is_equal=False,
        reason=Reason(text=text, first_value=first, second_value=second),
    )


def compare_any(first: Any, second: Any) -> bool:
    """Type-aware equality that never raises.

    Integers and floats compare by value (``5 == 5.0``), strings and booleans
    must be identical, values of different kinds are simply unequal, and
    composites are compared structurally with array order significant.
    """
    first_kind = comparable_kind(first)
    if first_kind != comparable_kind(second):
        return False
    kind = kind_of(first)
    if kind is ValueKind.OBJECT:
        if first.keys() != second.keys():
            return False
        return all(compare_any(first[key], second[key]) for key in first)
    if kind is ValueKind.ARRAY:
        if len(first) != len(second):
            return False
        return all(compare_any(left, right) for left, right in zip(first, second))
    return first == second
