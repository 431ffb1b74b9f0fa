"""Shared test fixtures for the REST engine test suite."""
from __future__ import annotations

import copy
from collections.abc import Callable, Generator
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from src.shared.models.descriptors import ResourceInfo
from src.rest_engine.client import RestClient
from src.rest_engine.openapi import OpenAPIDocument
from tests.fixtures.mock_api import create_app

BASE_URL = "http://testserver"

_USER_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": "string"},
        "name": {"type": "string"},
        "email": {"type": "string"},
        "age": {"type": "integer"},
    },
}

API_SPEC: dict[str, Any] = {
    "openapi": "3.0.3",
    "info": {"title": "Users API", "version": "1.0.0"},
    "servers": [{"url": BASE_URL}],
    "paths": {
        "/users": {
            "get": {
                "parameters": [
                    {"name": "name", "in": "query", "required": False,
                     "schema": {"type": "string"}},
                ],
                "responses": {"200": {"description": "A page of users"}},
            },
            "post": {
                "requestBody": {
                    "content": {
                        "application/json": {
                            "schema": {
                                "allOf": [
                                    {"type": "object", "properties": {
                                        "name": {"type": "string"},
                                        "email": {"type": "string"},
                                    }},
                                    {"type": "object", "properties": {
                                        "age": {"type": "integer"},
                                    }},
                                ],
                            },
                        },
                    },
                },
                "responses": {"201": {"description": "Created"}},
            },
        },
        "/users/{id}": {
            "parameters": [
                {"name": "id", "in": "path", "required": True,
                 "schema": {"type": "string"}},
            ],
            "get": {
                "responses": {
                    "200": {"description": "The user"},
                    "404": {"description": "Not found"},
                },
            },
            "put": {
                "requestBody": {
                    "content": {"application/json": {"schema": _USER_SCHEMA}},
                },
                "responses": {"200": {"description": "Updated"}},
            },
            "delete": {"responses": {"204": {"description": "Deleted"}}},
        },
        "/paged/users": {
            "get": {
                "parameters": [
                    {"name": "X-Continuation-Token", "in": "header",
                     "required": False, "schema": {"type": "string"}},
                ],
                "responses": {"200": {"description": "One page"}},
            },
        },
        "/search/users": {
            "get": {
                "parameters": [
                    {"name": "q", "in": "query", "required": True,
                     "schema": {"type": "string"}},
                    {"name": "X-Api-Key", "in": "header", "required": True,
                     "schema": {"type": "string"}},
                    {"name": "Authorization", "in": "header", "required": True,
                     "schema": {"type": "string"}},
                    {"name": "session", "in": "cookie", "required": False,
                     "schema": {"type": "string"}},
                ],
                "responses": {"200": {"description": "Search results"}},
            },
        },
        "/mirror/users": {
            "get": {
                "servers": [
                    {"url": "https://mirror.example.com/v2"},
                    {"url": "https://ignored.example.com"},
                ],
                "responses": {"200": {"description": "Mirrored users"}},
            },
        },
    },
}

USER_DESCRIPTORS: list[dict[str, Any]] = [
    {"action": "get", "method": "GET", "path": "/users/{id}"},
    {
        "action": "create",
        "method": "POST",
        "path": "/users",
        "requestFieldMapping": [
            {"inBody": "email", "inCustomResource": "spec.contact.email"},
        ],
    },
    {"action": "update", "method": "PUT", "path": "/users/{id}"},
    {"action": "delete", "method": "DELETE", "path": "/users/{id}"},
    {"action": "findBy", "method": "GET", "path": "/users"},
]


@pytest.fixture
def api_spec() -> dict[str, Any]:
    """A fresh copy of the users API description."""
    return copy.deepcopy(API_SPEC)


@pytest.fixture
def document(api_spec: dict[str, Any]) -> OpenAPIDocument:
    return OpenAPIDocument(api_spec)


@pytest.fixture
def mock_api() -> Generator[TestClient, None, None]:
    """TestClient (an ``httpx.Client``) backed by the in-memory users API."""
    with TestClient(create_app(), base_url=BASE_URL) as client:
        yield client


@pytest.fixture
def resource_info() -> ResourceInfo:
    return ResourceInfo.model_validate(
        {
            "url": "users_openapi.yaml",
            "resources": {
                "kind": "User",
                "identifiers": ["name"],
                "additionalStatusFields": ["email"],
                "verbsDescription": copy.deepcopy(USER_DESCRIPTORS),
            },
        }
    )


@pytest.fixture
def user_resource() -> dict[str, Any]:
    """Resource document for the seeded user ``bob``."""
    return {
        "apiVersion": "sample.example.com/v1",
        "kind": "User",
        "metadata": {"name": "bob"},
        "spec": {"name": "bob", "contact": {"email": "bob@example.com"}},
    }


@pytest.fixture
def rest_client(
    document: OpenAPIDocument, mock_api: TestClient, user_resource: dict[str, Any]
) -> RestClient:
    return RestClient(
        document,
        identifier_fields=["name"],
        resource=user_resource,
        http_client=mock_api,
    )


@pytest.fixture
def transport_client() -> Generator[Callable[..., RestClient], None, None]:
    """Factory for a client whose transport is a handler function.

    Usage: ``transport_client(handler, **client_kwargs)``.
    """
    created: list[httpx.Client] = []

    def factory(
        handler: Callable[[httpx.Request], httpx.Response], **kwargs: Any
    ) -> RestClient:
        http_client = httpx.Client(transport=httpx.MockTransport(handler))
        created.append(http_client)
        kwargs.setdefault("document", OpenAPIDocument(copy.deepcopy(API_SPEC)))
        return RestClient(http_client=http_client, **kwargs)

    yield factory
    for client in created:
        client.close()
