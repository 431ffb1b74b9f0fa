"""Engine configuration management using pydantic-settings."""
from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from src.shared.constants import DEFAULT_MATCH_POLICY, MATCH_POLICIES


class SharedConfig(BaseSettings):
    """Base configuration shared by every engine entry point."""
    log_level: str = Field(default="info", validation_alias="LOG_LEVEL")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }


class EngineConfig(SharedConfig):
    """Configuration for the REST invocation engine.

    Read once from the environment and handed to the engine explicitly.
    """
    identifier_match_policy: str = Field(
        default=DEFAULT_MATCH_POLICY,
        validation_alias="REST_CONTROLLER_IDENTIFIER_MATCH_POLICY",
    )
    debug: bool = Field(default=False, validation_alias="REST_CONTROLLER_DEBUG")
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        validation_alias="REST_CONTROLLER_REQUEST_TIMEOUT",
    )

    @field_validator("identifier_match_policy", mode="before")
    @classmethod
    def normalize_policy(cls, value: object) -> str:
        policy = str(value or "").strip().upper()
        if policy not in MATCH_POLICIES:
            return DEFAULT_MATCH_POLICY
        return policy
