"""Call and request configuration building.

:func:`api_call_builder` picks the operation descriptor serving an action and
introspects it; :func:`build_call_config` fills a
:class:`RequestConfiguration` from four value sources, in this order:

1. the Configuration Document, under ``<section>.<action>``;
2. the explicit field mappings, which overwrite step 1;
3. same-named ``spec`` fields, for slots still unset;
4. same-named ``status`` fields, for slots still unset.
"""
from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Mapping
from typing import Any

from src.shared.constants import (
    BODY_METHODS,
    CONFIG_SECTIONS,
    LOCATION_COOKIE,
    LOCATION_HEADER,
    LOCATION_PATH,
    LOCATION_QUERY,
    SPEC_FIELD,
    STATUS_FIELD,
)
from src.shared.errors import EngineError, FieldAccessError, MalformedPathError
from src.shared.models.calls import (
    CallInfo,
    RequestConfiguration,
    RequestedParams,
    Response,
)
from src.shared.models.descriptors import (
    BODY_TARGET,
    APIAction,
    RequestFieldMappingItem,
    ResourceInfo,
)
from src.rest_engine.client import RestClient
from src.rest_engine.pathparsing import parse_path
from src.rest_engine.values import (
    copy_json_value,
    generic_to_string,
    get_nested_field,
    set_nested_field,
)

logger = logging.getLogger(__name__)

APIFunc = Callable[..., Response]


def api_call_builder(
    client: RestClient,
    info: ResourceInfo,
    action: APIAction | str,
) -> tuple[APIFunc | None, CallInfo | None]:
    """Select the descriptor serving *action* and describe its call.

    Args:
        client: Client whose document is introspected and whose methods
            are returned.
        info: The resource description.
        action: The action to build, matched case-insensitively.

    Returns:
        ``(func, call_info)``. ``func`` accepts ``(path, conf, cancel=None)``;
        for find-by it is :meth:`RestClient.find_by` bound to the
        descriptor, otherwise :meth:`RestClient.call`. ``(None, None)``
        when no descriptor serves the action.

    Raises:
        OperationNotFoundError: if the descriptor points at an undeclared
            operation.
        SchemaError: if the operation's parameters or body cannot be read.
    """
    if isinstance(action, str):
        action = APIAction.from_string(action)

    descriptor = info.resource.descriptor_for(action)
    if descriptor is None:
        logger.debug("No descriptor for action %s", action.value)
        return None, None

    path_params, query, headers, cookies = client.requested_params(
        descriptor.method, descriptor.path
    )
    body: frozenset[str] = frozenset()
    if descriptor.method in BODY_METHODS:
        body = client.requested_body(descriptor.method, descriptor.path)

    call_info = CallInfo(
        path=descriptor.path,
        method=descriptor.method,
        action=action,
        req_params=RequestedParams(
            path=path_params,
            query=query,
            headers=headers,
            cookies=cookies,
            body=body,
        ),
        identifier_fields=tuple(info.resource.identifiers),
        request_field_mapping=tuple(descriptor.request_field_mapping),
    )

    if action is APIAction.FIND_BY:
        return functools.partial(client.find_by, descriptor=descriptor), call_info
    return client.call, call_info


def build_call_config(
    call_info: CallInfo | None,
    resource: Mapping[str, Any] | None,
    configuration_spec: Mapping[str, Any] | None = None,
) -> RequestConfiguration | None:
    """Assemble the request values for *call_info*.

    Returns None when there is no call or no resource to read from.
    """
    if call_info is None or resource is None:
        return None

    conf = RequestConfiguration(method=call_info.method)

    _apply_configuration_spec(conf, configuration_spec, call_info.action)
    _apply_field_mappings(conf, call_info.request_field_mapping, resource)

    for subtree in (SPEC_FIELD, STATUS_FIELD):
        fields = resource.get(subtree)
        if isinstance(fields, Mapping):
            _apply_resource_fields(conf, call_info.req_params, fields)

    logger.debug(
        "Built %s configuration: path=%s query=%s body keys=%s",
        call_info.action.value,
        conf.parameters,
        conf.query,
        sorted(conf.body),
    )
    return conf


def _apply_configuration_spec(
    conf: RequestConfiguration,
    configuration_spec: Mapping[str, Any] | None,
    action: APIAction,
) -> None:
    if not configuration_spec:
        return
    targets = {
        LOCATION_PATH: conf.parameters,
        LOCATION_QUERY: conf.query,
        LOCATION_HEADER: conf.headers,
        LOCATION_COOKIE: conf.cookies,
    }
    for location, section in CONFIG_SECTIONS.items():
        values = _action_section(configuration_spec.get(section), action)
        for key, value in values.items():
            targets[location][str(key)] = generic_to_string(value)


def _action_section(section: Any, action: APIAction) -> Mapping[str, Any]:
    """The ``<action>`` block of a Configuration Document section."""
    if not isinstance(section, Mapping):
        return {}
    for key, values in section.items():
        if str(key).lower() == action.value and isinstance(values, Mapping):
            return values
    return {}


def _apply_field_mappings(
    conf: RequestConfiguration,
    mappings: tuple[RequestFieldMappingItem, ...],
    resource: Mapping[str, Any],
) -> None:
    for mapping in mappings:
        target = mapping.target
        if target is None:
            continue
        location, name = target
        try:
            source = parse_path(mapping.in_custom_resource)
            value, found = get_nested_field(resource, source)
        except (MalformedPathError, FieldAccessError) as exc:
            logger.warning(
                "Skipping mapping from %r: %s", mapping.in_custom_resource, exc.detail
            )
            continue
        if not found:
            continue

        try:
            segments = parse_path(name)
        except MalformedPathError as exc:
            logger.warning("Skipping mapping to %r: %s", name, exc.detail)
            continue

        if location == BODY_TARGET:
            try:
                set_nested_field(conf.body, copy_json_value(value), segments)
            except FieldAccessError as exc:
                logger.warning("Skipping body mapping to %r: %s", name, exc.detail)
            continue

        # Path and query parameters are flat.
        if len(segments) != 1 or not segments[0]:
            logger.warning("Skipping %s mapping to nested name %r", location, name)
            continue
        dest = conf.parameters if location == LOCATION_PATH else conf.query
        dest[segments[0]] = generic_to_string(value)


def _apply_resource_fields(
    conf: RequestConfiguration,
    params: RequestedParams,
    fields: Mapping[str, Any],
) -> None:
    for name, value in fields.items():
        if not name:
            continue
        if name in params.path and name not in conf.parameters:
            conf.parameters[name] = generic_to_string(value)
        if name in params.query and name not in conf.query:
            conf.query[name] = generic_to_string(value)
        if name in params.body and conf.body.get(name) is None:
            conf.body[name] = copy_json_value(value)


def is_resource_known(
    client: RestClient,
    info: ResourceInfo | None,
    resource: Mapping[str, Any] | None,
) -> bool:
    """True if the ``get`` request for *resource* can be built and validated.

    A resource that already carries its server-assigned identifier can be
    read directly; otherwise it has to be located with a search.
    """
    if info is None or resource is None:
        return False
    try:
        func, call_info = api_call_builder(client, info, APIAction.GET)
    except EngineError as exc:
        logger.debug("Cannot build get call: %s", exc.detail)
        return False
    if func is None or call_info is None:
        return False

    conf = build_call_config(call_info, resource, info.configuration_spec)
    if conf is None:
        return False
    try:
        client.validate_request(
            call_info.method,
            call_info.path,
            conf.parameters,
            conf.query,
            conf.headers,
            conf.cookies,
        )
    except EngineError as exc:
        logger.debug("Resource not known: %s", exc.detail)
        return False
    return True
