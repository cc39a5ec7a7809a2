"""Runtime settings for serialized attributes."""

from __future__ import annotations

from collections.abc import Callable
from functools import lru_cache
from typing import Literal, TypeVar

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ALLOWED_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

T = TypeVar("T")


def create_settings_accessors(
    settings_type: type[T],
) -> tuple[Callable[[], T], Callable[[], T]]:
    """Create ``get_settings`` and ``reload_settings`` helpers for a settings class."""

    @lru_cache(maxsize=1)
    def _build() -> T:
        return settings_type()

    def get_settings() -> T:
        return _build()

    def reload_settings() -> T:
        _build.cache_clear()
        return _build()

    return get_settings, reload_settings


class Settings(BaseSettings):
    """Settings read from ``SERIALIZE_ATTRIBUTES_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SERIALIZE_ATTRIBUTES_",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )

    log_level: str | None = Field(default=None)
    log_format: Literal["console", "json"] = "console"

    null_placeholder: str = "(null)"
    options_separator: str = ", "
    inclusion_message: str = "{value} is not one of {options}"
    predicate_name_template: str = "is_{name}"

    unknown_keys: Literal["preserve", "drop", "error"] = "preserve"
    validate_on_flush: bool = False

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if value is None:
            return None
        normalized = str(value).strip().upper()
        if normalized not in ALLOWED_LOG_LEVELS:
            allowed = ", ".join(sorted(ALLOWED_LOG_LEVELS))
            raise ValueError(f"SERIALIZE_ATTRIBUTES_LOG_LEVEL must be one of: {allowed}.")
        return normalized

    @field_validator("log_format", "unknown_keys", mode="before")
    @classmethod
    def _normalize_choice(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("predicate_name_template")
    @classmethod
    def _require_name_placeholder(cls, value: str) -> str:
        if "{name}" not in value:
            raise ValueError(
                "SERIALIZE_ATTRIBUTES_PREDICATE_NAME_TEMPLATE must contain '{name}'."
            )
        return value

    @property
    def effective_log_level(self) -> str:
        return self.log_level or "WARNING"


get_settings, reload_settings = create_settings_accessors(Settings)


__all__ = ["Settings", "get_settings", "reload_settings"]
