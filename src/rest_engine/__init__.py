"""Schema-driven REST invocation engine -- build, send, search and compare."""
from src.shared.constants import VERSION
from src.rest_engine.builder import api_call_builder, build_call_config, is_resource_known
from src.rest_engine.client import RestClient, build_client
from src.rest_engine.comparison import compare_existing
from src.rest_engine.matching import ItemMatcher, extract_items
from src.rest_engine.openapi import OpenAPIDocument
from src.rest_engine.pathparsing import parse_path
from src.rest_engine.status import is_cr_updated, populate_status_fields

__all__ = [
    "ItemMatcher",
    "OpenAPIDocument",
    "RestClient",
    "api_call_builder",
    "build_call_config",
    "build_client",
    "compare_existing",
    "extract_items",
    "is_cr_updated",
    "is_resource_known",
    "parse_path",
    "populate_status_fields",
]

__version__ = VERSION
