"""Shared constants used across the engine."""
from __future__ import annotations

# Application version
VERSION: str = "1.0.0"

# Service name used for structured logs
ENGINE_SERVICE_NAME: str = "rest-dynamic-engine"

# Identifier match policies
MATCH_POLICY_AND: str = "AND"
MATCH_POLICY_OR: str = "OR"
MATCH_POLICIES: tuple[str, ...] = (MATCH_POLICY_AND, MATCH_POLICY_OR)
DEFAULT_MATCH_POLICY: str = MATCH_POLICY_OR

# HTTP methods that carry a JSON request body
BODY_METHODS: frozenset[str] = frozenset({"POST", "PUT", "PATCH"})

# Parameter locations, as declared in OpenAPI
LOCATION_PATH: str = "path"
LOCATION_QUERY: str = "query"
LOCATION_HEADER: str = "header"
LOCATION_COOKIE: str = "cookie"

# Configuration Document section keys, per parameter location
CONFIG_SECTIONS: dict[str, str] = {
    LOCATION_PATH: "path",
    LOCATION_QUERY: "query",
    LOCATION_HEADER: "headers",
    LOCATION_COOKIE: "cookies",
}

# Resource Document subtrees
SPEC_FIELD: str = "spec"
STATUS_FIELD: str = "status"

# Status codes signalling asynchronous completion
PENDING_STATUS_CODES: frozenset[int] = frozenset({100, 102, 202})

# Status codes allowed to carry an empty body
EMPTY_BODY_STATUS_CODES: frozenset[int] = frozenset({204, 304})

JSON_CONTENT_TYPE: str = "application/json"
