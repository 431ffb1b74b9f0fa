"""Observed-state helpers for the resource document."""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from src.shared.constants import SPEC_FIELD, STATUS_FIELD
from src.shared.errors import FieldAccessError, MalformedPathError
from src.shared.models.calls import ComparisonResult
from src.shared.models.descriptors import ResourceInfo
from src.rest_engine.comparison import compare_existing
from src.rest_engine.pathparsing import parse_path
from src.rest_engine.values import get_nested_field, normalize, set_nested_field

logger = logging.getLogger(__name__)


def populate_status_fields(
    info: ResourceInfo,
    resource: dict[str, Any],
    body: Mapping[str, Any] | None,
) -> None:
    """Copy identifier and additional status fields from *body* into ``status``.

    Each field keeps its path: ``metadata.id`` in the body is written to
    ``status.metadata.id``. Values are normalised so that a later comparison
    does not trip over float/integer differences. Fields the body does not
    contain are skipped.

    Raises:
        FieldAccessError: if the ``status`` subtree cannot hold a field.
    """
    if body is None:
        return

    fields = [*info.resource.identifiers, *info.resource.additional_status_fields]
    for field in fields:
        try:
            segments = parse_path(field)
        except MalformedPathError as exc:
            logger.warning("Skipping status field %r: %s", field, exc.detail)
            continue
        if segments == [""]:
            continue

        try:
            value, found = get_nested_field(body, segments)
        except FieldAccessError:
            continue
        if not found:
            continue

        try:
            set_nested_field(resource, normalize(value), [STATUS_FIELD, *segments])
        except FieldAccessError as exc:
            raise FieldAccessError(
                f"setting status field {field!r}: {exc.detail}"
            ) from exc


def is_cr_updated(
    resource: Mapping[str, Any], body: Mapping[str, Any]
) -> ComparisonResult:
    """Compare the resource's desired fields against the observed *body*.

    Raises:
        FieldAccessError: if ``spec`` is present but not a document.
        TypeMismatchError: if a compared field changed kind.
    """
    spec = resource.get(SPEC_FIELD)
    if spec is None:
        spec = {}
    if not isinstance(spec, Mapping):
        raise FieldAccessError(
            f"{SPEC_FIELD} is of type {type(spec).__name__}, expected a document"
        )
    return compare_existing(spec, body)
