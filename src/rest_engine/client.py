"""HTTP invocation engine.

:class:`RestClient` turns a :class:`RequestConfiguration` into a request
against the URL an OpenAPI document declares, checks the response status
against the operation's declared success codes and decodes the JSON body.
:meth:`RestClient.find_by` adds the paginated search on top of it.
"""
from __future__ import annotations

import json
import logging
import threading
from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import quote

import httpx

from src.shared.config import EngineConfig
from src.shared.constants import (
    DEFAULT_MATCH_POLICY,
    EMPTY_BODY_STATUS_CODES,
    JSON_CONTENT_TYPE,
)
from src.shared.errors import (
    CallCancelledError,
    DecodingError,
    ItemNotFoundError,
    RequestValidationError,
    SchemaError,
    StatusError,
    TransportError,
)
from src.shared.logging import call_scope
from src.shared.models.calls import RequestConfiguration, Response
from src.shared.models.descriptors import OperationDescriptor, ResourceInfo
from src.rest_engine.auth import AuthCallback
from src.rest_engine.matching import ItemMatcher, extract_items
from src.rest_engine.openapi import OpenAPIDocument
from src.rest_engine.pagination import Paginator, new_paginator

logger = logging.getLogger(__name__)

DEBUG_LOGGER_NAME = "src.rest_engine.debug"
debug_logger = logging.getLogger(DEBUG_LOGGER_NAME)


# Characters left as-is in a path template; parameter values are escaped
# separately and completely.
_PATH_SAFE = "/%:@!$&'()*+,;=-._~{}"


# ----------------------------------------------------------------------
# Debug interceptors
# ----------------------------------------------------------------------


def _dump_request(request: httpx.Request) -> None:
    lines = [f"{request.method} {request.url}"]
    lines.extend(f"{name}: {value}" for name, value in request.headers.items())
    body = request.content.decode("utf-8", errors="replace")
    debug_logger.debug("Request:\n%s\n\n%s", "\n".join(lines), body)


def _dump_response(response: httpx.Response) -> None:
    response.read()
    lines = [f"{response.http_version} {response.status_code} {response.reason_phrase}"]
    lines.extend(f"{name}: {value}" for name, value in response.headers.items())
    debug_logger.debug("Response:\n%s\n\n%s", "\n".join(lines), response.text)


def enable_debug(client: httpx.Client) -> None:
    """Install the request/response dump hooks on *client*.

    Installing twice leaves a single pair of hooks in place.
    """
    hooks = client.event_hooks
    request_hooks = list(hooks.get("request", []))
    response_hooks = list(hooks.get("response", []))
    if _dump_request not in request_hooks:
        request_hooks.append(_dump_request)
    if _dump_response not in response_hooks:
        response_hooks.append(_dump_response)
    client.event_hooks = {"request": request_hooks, "response": response_hooks}


# ----------------------------------------------------------------------
# URL construction
# ----------------------------------------------------------------------


def build_url(base_url: str, path: str, parameters: Mapping[str, str]) -> httpx.URL:
    """Join *base_url* and the path template with its parameters substituted.

    Parameter values are fully percent-escaped, so a ``/`` inside a value
    never creates a new path segment. The base URL's own path is kept as a
    prefix.
    """
    for key, value in parameters.items():
        path = path.replace("{" + key + "}", quote(value, safe=""), 1)

    base = httpx.URL(base_url)
    parts = [part.strip("/") for part in (base.path, path)]
    joined = "/" + "/".join(part for part in parts if part)
    return base.copy_with(raw_path=quote(joined, safe=_PATH_SAFE).encode("ascii"))


class RestClient:
    """Invokes the operations of one OpenAPI document.

    Args:
        document: The reference-resolved OpenAPI document.
        server: Base URL; defaults to the document's first server.
        identifier_fields: Path expressions identifying the resource in a
            search result.
        identifier_match_policy: ``"AND"`` or ``"OR"``.
        resource: The resource document searches are matched against.
        debug: Dump every request and response to the debug logger.
        set_auth: Callback adding credentials to each outgoing request.
        http_client: Client used for every request. One with
            ``timeout`` is created when omitted.
        timeout: Request timeout in seconds for a created client.
    """

    def __init__(
        self,
        document: OpenAPIDocument,
        server: str | None = None,
        identifier_fields: Sequence[str] = (),
        identifier_match_policy: str = DEFAULT_MATCH_POLICY,
        resource: dict[str, Any] | None = None,
        debug: bool = False,
        set_auth: AuthCallback | None = None,
        http_client: httpx.Client | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.document = document
        self.server = server or document.server_url
        self.identifier_fields = list(identifier_fields)
        self.identifier_match_policy = identifier_match_policy
        self.resource = resource
        self.debug = debug
        self.set_auth = set_auth
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.Client(timeout=timeout)

    @classmethod
    def from_config(
        cls,
        document: OpenAPIDocument,
        config: EngineConfig | None = None,
        **kwargs: Any,
    ) -> RestClient:
        """Create a client whose policy, debug flag and timeout come from *config*."""
        config = config or EngineConfig()
        kwargs.setdefault("identifier_match_policy", config.identifier_match_policy)
        kwargs.setdefault("debug", config.debug)
        kwargs.setdefault("timeout", config.request_timeout)
        return cls(document, **kwargs)

    def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            self.http_client.close()

    def __enter__(self) -> RestClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Introspection shortcuts
    # ------------------------------------------------------------------

    def requested_params(
        self, method: str, path: str
    ) -> tuple[frozenset[str], frozenset[str], frozenset[str], frozenset[str]]:
        return self.document.requested_params(method, path)

    def requested_body(self, method: str, path: str) -> frozenset[str]:
        return self.document.requested_body(method, path)

    def validate_request(
        self,
        method: str,
        path: str,
        parameters: Mapping[str, str],
        query: Mapping[str, str],
        headers: Mapping[str, str],
        cookies: Mapping[str, str],
    ) -> None:
        self.document.validate_request(method, path, parameters, query, headers, cookies)

    def matcher(self) -> ItemMatcher:
        """Matcher bound to the current resource and identifier policy."""
        return ItemMatcher(
            self.identifier_fields, self.resource, self.identifier_match_policy
        )

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    def call(
        self,
        path: str,
        conf: RequestConfiguration,
        cancel: threading.Event | None = None,
    ) -> Response:
        """Send one request and decode its response.

        Args:
            path: The OpenAPI path template, e.g. ``/users/{id}``.
            conf: Values for the request.
            cancel: When set, the call stops before the request is sent.

        Returns:
            The decoded :class:`Response`; ``body`` is None for an empty
            204 or 304 response.

        Raises:
            OperationNotFoundError: if the operation is not declared.
            RequestValidationError: if a required parameter is missing.
            TransportError: if the request cannot be completed.
            StatusError: if the status code is not a declared success code.
            DecodingError: if the body is empty or not JSON.
            CallCancelledError: if *cancel* is set.
        """
        with call_scope():
            logger.debug("Calling %s %s", conf.method, path)
            request = self._build_request(path, conf)
            http_response = self._send(request, cancel)
            return self._interpret(path, conf.method, http_response)

    def find_by(
        self,
        path: str,
        conf: RequestConfiguration,
        descriptor: OperationDescriptor | None = None,
        cancel: threading.Event | None = None,
    ) -> Response:
        """Search the collection at *path* for the item matching the resource.

        Without a pagination block on *descriptor* a single call is made.
        Otherwise pages are fetched in order until an item matches or the
        paginator reports there are no more pages.

        Raises:
            ItemNotFoundError: if no item matches.
            PaginationError: on an unsupported pagination configuration.
            DecodingError: if a page body is not a list or an object.
        """
        with call_scope():
            paginator = new_paginator(descriptor.pagination if descriptor else None)
            if paginator is None:
                logger.debug("FindBy without pagination, performing single call")
                return self._single_find_by(path, conf, cancel)
            logger.debug("FindBy with %s pagination", descriptor.pagination.type)
            return self._paginated_find_by(path, conf, paginator, cancel)

    def _single_find_by(
        self,
        path: str,
        conf: RequestConfiguration,
        cancel: threading.Event | None,
    ) -> Response:
        response = self.call(path, conf, cancel)
        if response.body is None:
            raise ItemNotFoundError("item not found")
        match = self.matcher().find_match(extract_items(response.body))
        if match is None:
            raise ItemNotFoundError("item not found")
        return Response(body=match, status_code=response.status_code)

    def _paginated_find_by(
        self,
        path: str,
        conf: RequestConfiguration,
        paginator: Paginator,
        cancel: threading.Event | None,
    ) -> Response:
        matcher = self.matcher()
        paginator.init()
        page = 0
        while True:
            page += 1
            request = self._build_request(path, conf)
            paginator.update_request(request)
            http_response = self._send(request, cancel)
            response = self._interpret(path, conf.method, http_response)

            items = extract_items(response.body) if response.body is not None else []
            match = matcher.find_match(items)
            if match is not None:
                logger.debug("Match found on page %d", page)
                return Response(body=match, status_code=response.status_code)

            if not paginator.should_continue(http_response, http_response.content):
                break

        raise ItemNotFoundError("item not found after checking all pages")

    # ------------------------------------------------------------------
    # Request/response plumbing
    # ------------------------------------------------------------------

    def _build_request(self, path: str, conf: RequestConfiguration) -> httpx.Request:
        server = self.document.operation_server(conf.method, path) or self.server

        self.validate_request(
            conf.method, path, conf.parameters, conf.query, conf.headers, conf.cookies
        )

        if not isinstance(conf.body, dict):
            raise RequestValidationError(
                f"invalid body type: {type(conf.body).__name__}", location="body"
            )

        headers: dict[str, str] = {}
        content: bytes | None = None
        if conf.body:
            try:
                content = json.dumps(conf.body).encode("utf-8")
            except (TypeError, ValueError) as exc:
                raise RequestValidationError(
                    f"encoding request body: {exc}", location="body"
                ) from exc
            headers["Content-Type"] = JSON_CONTENT_TYPE
        cookies = [f"{name}={value}" for name, value in conf.cookies.items()]
        for name, value in conf.headers.items():
            if name.lower() == "cookie":
                # A raw Cookie header goes first, before the cookie map.
                cookies.insert(0, value)
            else:
                headers[name] = value
        if cookies:
            headers["Cookie"] = "; ".join(cookies)

        try:
            url = build_url(server, path, conf.parameters)
        except (httpx.InvalidURL, UnicodeEncodeError) as exc:
            raise SchemaError(f"building url for {path}: {exc}") from exc

        return self.http_client.build_request(
            conf.method,
            url,
            params=conf.query or None,
            headers=headers,
            content=content,
        )

    def _send(
        self, request: httpx.Request, cancel: threading.Event | None
    ) -> httpx.Response:
        if cancel is not None and cancel.is_set():
            raise CallCancelledError(f"call to {request.url} cancelled")
        if self.set_auth is not None:
            self.set_auth(request)
        if self.debug:
            enable_debug(self.http_client)
        try:
            return self.http_client.send(request)
        except httpx.HTTPError as exc:
            raise TransportError(f"making request: {exc}") from exc

    def _interpret(
        self, path: str, method: str, http_response: httpx.Response
    ) -> Response:
        status = http_response.status_code
        if status not in self.document.valid_status_codes(method, path):
            inner = httpx.HTTPStatusError(
                f"invalid status code: {status}",
                request=http_response.request,
                response=http_response,
            )
            raise StatusError(status, inner=inner)

        try:
            raw = http_response.read()
        except httpx.HTTPError as exc:
            raise TransportError(f"reading response body: {exc}") from exc

        if not raw:
            if status in EMPTY_BODY_STATUS_CODES:
                return Response(body=None, status_code=status)
            raise DecodingError(
                f"response body is empty for unexpected status code {status}"
            )

        try:
            body = json.loads(raw)
        except ValueError as exc:
            raise DecodingError(f"handling response: {exc}") from exc
        return Response(body=body, status_code=status)


# ----------------------------------------------------------------------
# Construction from a resource description
# ----------------------------------------------------------------------


def load_document(
    location: str, http_client: httpx.Client | None = None
) -> OpenAPIDocument:
    """Load the OpenAPI document at a local path or an http(s) URL."""
    if location.startswith(("http://", "https://")):
        client = http_client or httpx.Client()
        try:
            response = client.get(location)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransportError(f"fetching OpenAPI document {location}: {exc}") from exc
        finally:
            if http_client is None:
                client.close()
        return OpenAPIDocument.from_string(response.text)
    return OpenAPIDocument.from_file(location.removeprefix("file://"))


def build_client(
    info: ResourceInfo,
    config: EngineConfig | None = None,
    resource: dict[str, Any] | None = None,
    http_client: httpx.Client | None = None,
    document: OpenAPIDocument | None = None,
) -> RestClient:
    """Create the :class:`RestClient` serving *info*.

    The document is loaded from ``info.url`` unless one is passed in.
    """
    if document is None:
        if not info.url:
            raise SchemaError("resource description carries no OpenAPI location")
        document = load_document(info.url, http_client)
    return RestClient.from_config(
        document,
        config,
        identifier_fields=info.resource.identifiers,
        resource=resource,
        set_auth=info.set_auth,
        http_client=http_client,
    )
