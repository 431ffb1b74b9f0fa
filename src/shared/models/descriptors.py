"""Declarative resource description models (Pydantic v2).

These mirror the externally authored wire shape: camelCase keys such as
``requestFieldMapping`` or ``inCustomResource`` are accepted as aliases, the
snake_case attribute names are used in code.
"""
from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any

import httpx
from pydantic import BaseModel, Field, field_validator, model_validator

from src.shared.constants import LOCATION_PATH, LOCATION_QUERY

BODY_TARGET: str = "body"


class APIAction(str, Enum):
    """Actions a resource kind can declare an operation for."""
    GET = "get"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    LIST = "list"
    FIND_BY = "findby"

    @classmethod
    def from_string(cls, value: str) -> APIAction:
        """Parse an action name case-insensitively (``findBy`` -> FIND_BY)."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"unknown API action: {value}") from None


class PaginationType(str, Enum):
    """Supported pagination strategies."""
    CONTINUATION_TOKEN = "continuationToken"


class RequestFieldMappingItem(BaseModel):
    """Maps a Resource Document field to a path, query or body position."""
    in_path: str = Field(default="", alias="inPath")
    in_query: str = Field(default="", alias="inQuery")
    in_body: str = Field(default="", alias="inBody")
    in_custom_resource: str = Field(..., alias="inCustomResource")

    model_config = {"populate_by_name": True, "frozen": True}

    @model_validator(mode="after")
    def check_single_target(self) -> RequestFieldMappingItem:
        targets = [t for t in (self.in_path, self.in_query, self.in_body) if t]
        if len(targets) > 1:
            raise ValueError(
                "only one of 'inPath', 'inQuery' or 'inBody' can be set"
            )
        return self

    @property
    def target(self) -> tuple[str, str] | None:
        """``(location, name)`` of the mapping's target, None when unset."""
        if self.in_path:
            return LOCATION_PATH, self.in_path
        if self.in_query:
            return LOCATION_QUERY, self.in_query
        if self.in_body:
            return BODY_TARGET, self.in_body
        return None


class ContinuationTokenRequest(BaseModel):
    """Where the outbound token goes (``query`` or ``header``)."""
    token_in: str = Field(..., alias="tokenIn")
    token_path: str = Field(..., alias="tokenPath")

    model_config = {"populate_by_name": True, "frozen": True}


class ContinuationTokenResponse(BaseModel):
    """Where the next token is read from (``header`` or ``body``)."""
    token_in: str = Field(..., alias="tokenIn")
    token_path: str = Field(..., alias="tokenPath")

    model_config = {"populate_by_name": True, "frozen": True}


class ContinuationTokenConfig(BaseModel):
    """Continuation-token strategy settings."""
    request: ContinuationTokenRequest
    response: ContinuationTokenResponse

    model_config = {"populate_by_name": True, "frozen": True}


class Pagination(BaseModel):
    """Pagination block of a find-by operation descriptor."""
    type: str
    continuation_token: ContinuationTokenConfig | None = Field(
        default=None, alias="continuationToken"
    )

    model_config = {"populate_by_name": True, "frozen": True}


class OperationDescriptor(BaseModel):
    """Declarative description of one API action."""
    action: str
    method: str
    path: str
    request_field_mapping: list[RequestFieldMappingItem] = Field(
        default_factory=list, alias="requestFieldMapping"
    )
    pagination: Pagination | None = None

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("method")
    @classmethod
    def upper_method(cls, value: str) -> str:
        return value.strip().upper()

    def matches(self, action: APIAction | str) -> bool:
        """True if this descriptor serves *action* (case-insensitive)."""
        name = action.value if isinstance(action, APIAction) else action
        return self.action.strip().lower() == name.strip().lower()


class ResourceDescription(BaseModel):
    """The managed resource kind and its operations."""
    kind: str = ""
    identifiers: list[str] = Field(default_factory=list)
    additional_status_fields: list[str] = Field(
        default_factory=list, alias="additionalStatusFields"
    )
    verbs_description: list[OperationDescriptor] = Field(
        default_factory=list, alias="verbsDescription"
    )

    model_config = {"populate_by_name": True, "frozen": True}

    def descriptor_for(self, action: APIAction | str) -> OperationDescriptor | None:
        """Return the first descriptor serving *action*, if any."""
        for descriptor in self.verbs_description:
            if descriptor.matches(action):
                return descriptor
        return None


class ResourceInfo(BaseModel):
    """Everything needed to drive the remote API for one resource.

    ``url`` locates the OpenAPI document, ``configuration_spec`` is the
    Configuration Document and ``set_auth`` mutates each outgoing request.
    """
    url: str = ""
    resource: ResourceDescription = Field(
        default_factory=ResourceDescription, alias="resources"
    )
    configuration_spec: dict[str, Any] | None = Field(
        default=None, alias="configurationSpec"
    )
    set_auth: Callable[[httpx.Request], None] | None = Field(
        default=None, exclude=True
    )

    model_config = {"populate_by_name": True}
