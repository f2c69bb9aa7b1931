# Copyright (c) 2023-2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from typing import Any, ClassVar

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ("ContainerSettings", "settings")

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")


class ContainerSettings(BaseSettings, frozen=True):
    """Container settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    SECTIONKIT_OFFLOAD_MUTATIONS: bool = Field(
        default=False,
        description="Run mutation bodies on a worker thread instead of the drain task.",
    )
    SECTIONKIT_RAISE_OBSERVER_ERRORS: bool = Field(
        default=False,
        description="Propagate observer callback errors out of the notify step.",
    )
    SECTIONKIT_LOG_LEVEL: str = Field(
        default="WARNING",
        description="Level applied to the `sectionkit` logger on import.",
    )

    # Class variable to store the singleton instance
    _instance: ClassVar[Any] = None

    @field_validator("SECTIONKIT_LOG_LEVEL", mode="before")
    def _validate_log_level(cls, value: Any) -> str:
        level = str(value).upper()
        if level not in _LOG_LEVELS:
            raise ValueError(
                f"Invalid log level '{value}', expected one of {_LOG_LEVELS}"
            )
        return level


# Create a singleton instance
settings = ContainerSettings()
# Store the instance in the class variable for singleton pattern
ContainerSettings._instance = settings
