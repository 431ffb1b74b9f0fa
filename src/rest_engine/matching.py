"""Item matching for find-by searches.

A search response is first flattened into a list of candidate items, then
each item is tested against the resource's identifier fields under the
configured AND/OR policy.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from src.shared.constants import (
    MATCH_POLICY_AND,
    MATCH_POLICY_OR,
    SPEC_FIELD,
    STATUS_FIELD,
)
from src.shared.errors import DecodingError, FieldAccessError, MalformedPathError
from src.rest_engine.comparison import compare_any
from src.rest_engine.pathparsing import parse_path
from src.rest_engine.values import get_nested_field

logger = logging.getLogger(__name__)


def extract_items(body: Any) -> list[Any]:
    """Normalise a search response body into a list of items.

    Handles a bare array, an object wrapping an array (the first array-valued
    property wins, in document order) and a single object, which becomes a
    one-element list. An empty object yields an empty list.

    Raises:
        DecodingError: if the body is null or a scalar.
    """
    if isinstance(body, list):
        return body
    if body is None:
        raise DecodingError("response body is null")
    if not isinstance(body, dict):
        raise DecodingError(f"unexpected response type: {type(body).__name__}")
    if not body:
        return []
    for value in body.values():
        if isinstance(value, list):
            return value
    return [body]


class ItemMatcher:
    """Recognises the API item that corresponds to a resource document.

    Args:
        identifier_fields: Path expressions naming the identifying fields.
        resource: The resource document; identifiers are read from its
            ``spec`` first and its ``status`` second.
        policy: ``"AND"`` or ``"OR"``; anything else falls back to OR.
    """

    def __init__(
        self,
        identifier_fields: Sequence[str],
        resource: Mapping[str, Any] | None,
        policy: str = MATCH_POLICY_OR,
    ) -> None:
        self.identifier_fields = list(identifier_fields)
        self.resource = resource
        normalized = (policy or "").strip().upper()
        if normalized not in (MATCH_POLICY_AND, MATCH_POLICY_OR):
            normalized = MATCH_POLICY_OR
        self.policy = normalized

    def find_match(self, items: Sequence[Any]) -> dict[str, Any] | None:
        """Return the first item matching the resource, or None.

        Items that are not objects are skipped, and so is an item whose
        identifier lookup fails.
        """
        for item in items:
            if not isinstance(item, dict):
                continue
            try:
                if self.is_item_match(item):
                    return item
            except FieldAccessError as exc:
                logger.debug("Skipping item: %s", exc.detail)
        return None

    def is_item_match(self, item: Mapping[str, Any]) -> bool:
        """Apply the identifier policy to a single item.

        No identifier fields means no item can ever match.

        Raises:
            FieldAccessError: if the resource document cannot be traversed
                along an identifier path.
        """
        paths = self._identifier_paths()
        if not paths:
            logger.warning("No identifier fields configured, nothing can match")
            return False

        if self.policy == MATCH_POLICY_AND:
            for segments in paths:
                try:
                    value, found = get_nested_field(item, segments)
                except FieldAccessError:
                    return False
                if not found or not self.is_in_resource(value, segments):
                    return False
            return True

        for segments in paths:
            try:
                value, found = get_nested_field(item, segments)
            except FieldAccessError:
                continue
            if not found:
                continue
            if self.is_in_resource(value, segments):
                return True
        return False

    def is_in_resource(self, value: Any, segments: Sequence[str]) -> bool:
        """True if *value* equals the resource's ``spec`` or ``status`` field.

        Raises:
            FieldAccessError: if the resource has no document to search or a
                subtree cannot be traversed.
        """
        if self.resource is None:
            raise FieldAccessError("resource is not set")
        for subtree in (SPEC_FIELD, STATUS_FIELD):
            local, found = get_nested_field(self.resource, [subtree, *segments])
            if found and compare_any(local, value):
                return True
        return False

    def _identifier_paths(self) -> list[list[str]]:
        paths = []
        for field in self.identifier_fields:
            try:
                segments = parse_path(field)
            except MalformedPathError as exc:
                logger.warning("Ignoring identifier %r: %s", field, exc.detail)
                continue
            if segments and segments != [""]:
                paths.append(segments)
        return paths
