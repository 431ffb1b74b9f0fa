"""Test fixtures for the REST engine.

- users_openapi.yaml -- OpenAPI 3.0 description of the users API, with
  ``$ref`` pointers and an ``allOf`` request body
- mock_api.py -- FastAPI application implementing that API in memory
"""

from __future__ import annotations

from pathlib import Path

FIXTURES_DIR = Path(__file__).parent


def fixture_path(name: str) -> Path:
    """Return the absolute path to a named fixture file."""
    path = FIXTURES_DIR / name
    if not path.exists():
        raise FileNotFoundError(f"Fixture not found: {path}")
    return path


def load_openapi() -> str:
    """Load the users OpenAPI document as a string."""
    return fixture_path("users_openapi.yaml").read_text(encoding="utf-8")
