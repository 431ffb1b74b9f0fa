"""OpenAPI introspection.

Answers the questions the engine asks of an OpenAPI 3 document: which
parameters an operation declares and where, which body properties it
accepts, which parameters are mandatory, which status codes mean success and
which server URL to send the request to.

Documents are loaded with PyYAML (JSON is a subset) and ``$ref`` pointers are
resolved with prance before any lookup happens.
"""
from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from prance import ResolvingParser
from prance import ValidationError as PranceValidationError
from prance.util.url import ResolutionError

from src.shared.constants import (
    JSON_CONTENT_TYPE,
    LOCATION_COOKIE,
    LOCATION_HEADER,
    LOCATION_PATH,
    LOCATION_QUERY,
)
from src.shared.errors import (
    OperationNotFoundError,
    RequestValidationError,
    SchemaError,
)

logger = logging.getLogger(__name__)

_HTTP_METHODS = {"get", "put", "post", "delete", "options", "head", "patch", "trace"}
_LOCATIONS = (LOCATION_PATH, LOCATION_QUERY, LOCATION_HEADER, LOCATION_COOKIE)
_SERVER_VARIABLE = re.compile(r"\{([^{}]+)\}")
_WILDCARD_CODE = re.compile(r"^([1-5])XX$", re.IGNORECASE)


def is_authorization_header(name: str) -> bool:
    """Headers filled in by the authentication callback, not by the caller."""
    return "authorization" in name.lower()


class OpenAPIDocument:
    """A parsed, reference-resolved OpenAPI 3 document."""

    def __init__(self, spec: dict[str, Any]) -> None:
        if not isinstance(spec, dict):
            raise SchemaError(
                f"OpenAPI document must be an object, got {type(spec).__name__}"
            )
        self.spec = spec

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, spec: dict[str, Any]) -> OpenAPIDocument:
        """Build a document, resolving ``$ref`` pointers when present."""
        if not isinstance(spec, dict):
            raise SchemaError(
                f"OpenAPI document must be an object, got {type(spec).__name__}"
            )
        # YAML reads unquoted response codes as ints; OpenAPI keys are strings.
        spec = _string_keys(spec)
        # Resolution is skipped for documents without $ref pointers.
        if "$ref" in json.dumps(spec, default=str):
            spec = _resolve_references(spec)
        return cls(spec)

    @classmethod
    def from_string(cls, text: str) -> OpenAPIDocument:
        """Parse a YAML or JSON OpenAPI document."""
        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise SchemaError(f"parsing OpenAPI document: {exc}") from exc
        return cls.from_dict(raw)

    @classmethod
    def from_file(cls, path: Path | str) -> OpenAPIDocument:
        """Read and parse the OpenAPI document stored at *path*."""
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise SchemaError(f"reading OpenAPI document {path}: {exc}") from exc
        return cls.from_string(text)

    # ------------------------------------------------------------------
    # Servers
    # ------------------------------------------------------------------

    @property
    def server_url(self) -> str:
        """URL of the first top-level server.

        Raises:
            SchemaError: if the document declares no server.
        """
        servers = self.spec.get("servers") or []
        if not servers:
            raise SchemaError("no servers found in the document")
        return _server_url(servers[0])

    def operation_server(self, method: str, path: str) -> str | None:
        """First server override declared by the operation, if any.

        Only the first override is honoured; a path-level override is used
        when the operation declares none.
        """
        operation = self.operation(method, path)
        servers = operation.get("servers") or self._path_item(path).get("servers") or []
        if not servers:
            return None
        return _server_url(servers[0])

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def _path_item(self, path: str) -> dict[str, Any]:
        paths = self.spec.get("paths") or {}
        item = paths.get(path)
        if not isinstance(item, dict):
            raise OperationNotFoundError(f"path not found: {path}")
        return item

    def operation(self, method: str, path: str) -> dict[str, Any]:
        """Return the operation object for *method* on *path*.

        Raises:
            OperationNotFoundError: if the path or the method is not declared.
        """
        item = self._path_item(path)
        key = method.lower()
        operation = item.get(key) if key in _HTTP_METHODS else None
        if not isinstance(operation, dict):
            raise OperationNotFoundError(
                f"operation not found for method {method.upper()} at path {path}"
            )
        return operation

    def parameters(self, method: str, path: str) -> list[dict[str, Any]]:
        """Declared parameters; operation-level entries override path-level ones."""
        operation = self.operation(method, path)
        merged: dict[tuple[str, str], dict[str, Any]] = {}
        for source in (self._path_item(path).get("parameters"), operation.get("parameters")):
            for param in source or []:
                if not isinstance(param, dict) or "$ref" in param:
                    raise SchemaError(
                        f"unresolved parameter definition for {method.upper()} {path}"
                    )
                merged[(param.get("name", ""), param.get("in", ""))] = param
        return list(merged.values())

    def requested_params(
        self, method: str, path: str
    ) -> tuple[frozenset[str], frozenset[str], frozenset[str], frozenset[str]]:
        """Names of the declared path, query, header and cookie parameters.

        Raises:
            OperationNotFoundError: if the operation is not declared.
            SchemaError: on an unknown parameter location.
        """
        buckets: dict[str, set[str]] = {location: set() for location in _LOCATIONS}
        for param in self.parameters(method, path):
            location = param.get("in", "")
            if location not in buckets:
                raise SchemaError(f"unknown parameter location: {location}")
            buckets[location].add(param.get("name", ""))
        return (
            frozenset(buckets[LOCATION_PATH]),
            frozenset(buckets[LOCATION_QUERY]),
            frozenset(buckets[LOCATION_HEADER]),
            frozenset(buckets[LOCATION_COOKIE]),
        )

    def requested_body(self, method: str, path: str) -> frozenset[str]:
        """Top-level property names of the JSON request body.

        Properties contributed through ``allOf`` are included; for an array
        body the item schema is used. An operation without a JSON body
        yields an empty set.
        """
        operation = self.operation(method, path)
        request_body = operation.get("requestBody")
        if not request_body:
            return frozenset()
        schema = _json_media_schema(request_body.get("content") or {})
        if schema is None:
            return frozenset()
        try:
            properties = flatten_properties(schema)
        except SchemaError as exc:
            raise SchemaError(f"building schema for {path}: {exc.detail}") from exc
        return frozenset(properties)

    def validate_request(
        self,
        method: str,
        path: str,
        parameters: Mapping[str, str],
        query: Mapping[str, str],
        headers: Mapping[str, str],
        cookies: Mapping[str, str],
    ) -> None:
        """Check that every required parameter has a value.

        Authorization-style headers count as present: the authentication
        callback adds them after validation.

        Raises:
            OperationNotFoundError: if the operation is not declared.
            RequestValidationError: naming the first missing parameter.
        """
        header_names = {name.lower() for name in headers}
        supplied: dict[str, Any] = {
            LOCATION_PATH: parameters,
            LOCATION_QUERY: query,
            LOCATION_COOKIE: cookies,
        }
        for param in self.parameters(method, path):
            if not param.get("required", False):
                continue
            name = param.get("name", "")
            location = param.get("in", "")
            if location == LOCATION_HEADER:
                if name.lower() in header_names or is_authorization_header(name):
                    continue
                raise RequestValidationError(
                    f"missing header: {name}", location=location, name=name
                )
            values = supplied.get(location)
            if values is not None and name not in values:
                label = "parameter" if location != LOCATION_COOKIE else ""
                detail = f"missing {location} {label}".rstrip() + f": {name}"
                raise RequestValidationError(detail, location=location, name=name)

    def valid_status_codes(self, method: str, path: str) -> frozenset[int]:
        """Declared response codes in [200, 300).

        ``2XX`` expands to the whole range; ``default`` is ignored.

        Raises:
            SchemaError: on a response key that is not a status code.
        """
        responses = self.operation(method, path).get("responses") or {}
        codes: set[int] = set()
        for key in responses:
            text = str(key).strip()
            if text == "default":
                continue
            wildcard = _WILDCARD_CODE.match(text)
            if wildcard:
                if wildcard.group(1) == "2":
                    codes.update(range(200, 300))
                continue
            try:
                code = int(text)
            except ValueError:
                raise SchemaError(f"invalid response code: {text}") from None
            if 200 <= code < 300:
                codes.add(code)
        return frozenset(codes)


# ======================================================================
# Schema helpers
# ======================================================================


def flatten_properties(schema: Any) -> dict[str, Any]:
    """Collect the properties of *schema*, merging every ``allOf`` branch.

    Returns a new mapping; the schema itself is never modified.

    Raises:
        SchemaError: on a schema that still holds an unresolved ``$ref``.
    """
    if not isinstance(schema, dict):
        return {}
    if "$ref" in schema:
        raise SchemaError(f"unresolved reference {schema['$ref']}")

    schema_type = schema.get("type")
    types = schema_type if isinstance(schema_type, list) else [schema_type]
    if "array" in types:
        return flatten_properties(schema.get("items"))

    properties: dict[str, Any] = dict(schema.get("properties") or {})
    for branch in schema.get("allOf") or []:
        for name, value in flatten_properties(branch).items():
            properties.setdefault(name, value)
    return properties


def _json_media_schema(content: dict[str, Any]) -> dict[str, Any] | None:
    for media_type, media in content.items():
        base = media_type.split(";", 1)[0].strip().lower()
        if base == JSON_CONTENT_TYPE and isinstance(media, dict):
            return media.get("schema")
    return None


def _server_url(server: Any) -> str:
    """Server URL with ``{variable}`` placeholders set to their defaults."""
    if not isinstance(server, dict) or not server.get("url"):
        raise SchemaError("server entry without url")
    url: str = server["url"]
    variables = server.get("variables") or {}

    def substitute(match: re.Match[str]) -> str:
        variable = variables.get(match.group(1)) or {}
        return str(variable.get("default", match.group(0)))

    return _SERVER_VARIABLE.sub(substitute, url)


def _string_keys(value: Any) -> Any:
    """Copy of a parsed document with every mapping key as a string."""
    if isinstance(value, Mapping):
        return {str(key): _string_keys(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_string_keys(item) for item in value]
    return value


def _resolve_references(spec: dict[str, Any]) -> dict[str, Any]:
    """Resolve all ``$ref`` pointers using prance.

    The document lives in memory, so it is serialised to YAML and fed to
    prance's ``ResolvingParser`` as a string.
    """
    try:
        yaml_content: str = yaml.safe_dump(spec, default_flow_style=False)
        parser = ResolvingParser(
            spec_string=yaml_content,
            backend="openapi-spec-validator",
            strict=False,
            lazy=False,
        )
    except (
        PranceValidationError, ResolutionError, ValueError, KeyError, TypeError
    ) as exc:
        raise SchemaError(f"failed to resolve model references: {exc}") from exc
    logger.debug("Resolved $ref pointers in OpenAPI document")
    return parser.specification
