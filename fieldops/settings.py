"""
Audit subsystem configuration.

Values come from ``FIELDOPS_AUDIT_*`` environment variables; list-valued
settings accept JSON (``'["/static", "/assets"]'``).
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


class AuditConfigurationError(ValueError):
    """Raised when the audit subsystem is constructed with invalid settings."""


class AuditSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FIELDOPS_AUDIT_", case_sensitive=False
    )

    # Master switch for installing the audit middleware
    enabled: bool = True

    # Ring buffer size of the in-memory event store
    capacity: int = 1000

    static_prefixes: list[str] = Field(default_factory=lambda: ["/static"])
    health_paths: list[str] = Field(
        default_factory=lambda: ["/health", "/api/health"]
    )
    login_paths: list[str] = Field(default_factory=lambda: ["/api/login"])
    auth_segment: str = "/auth"

    # Request bodies above this size are recorded as a truncation marker
    max_body_bytes: int = 64 * 1024

    @field_validator("capacity")
    @classmethod
    def _capacity_positive(cls, v: int) -> int:
        if v < 1:
            raise AuditConfigurationError(f"audit capacity must be >= 1, got {v}")
        return v

    @field_validator("max_body_bytes")
    @classmethod
    def _body_limit_non_negative(cls, v: int) -> int:
        if v < 0:
            raise AuditConfigurationError(
                f"max_body_bytes must be >= 0, got {v}"
            )
        return v


@lru_cache
def get_audit_settings() -> AuditSettings:
    """Return the process-wide settings, read once from the environment."""
    settings = AuditSettings()
    logger.debug(
        "audit settings loaded",
        extra={"meta": settings.model_dump()},
    )
    return settings


def env_flag(name: str, *, default: bool = False) -> bool:
    """Return a boolean flag from the environment.

    Unset or unrecognised values fall back to ``default``.
    """
    raw = os.getenv(name)
    if raw is None:
        return bool(default)
    lowered = raw.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    return bool(default)


__all__ = [
    "AuditConfigurationError",
    "AuditSettings",
    "env_flag",
    "get_audit_settings",
]
