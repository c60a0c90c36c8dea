"""
Pipeline settings loaded from ``PIXELGRID_*`` environment variables or ``pixelgrid.env``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pixelgrid.domain.types.grid import GridLayout, Truncation
from pixelgrid.errors import ConfigurationError

PIXELGRID_ENV_FILENAME = "pixelgrid.env"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


class PipelineSettings(BaseSettings):
    """
    Settings for the decode scheduler.

    Every field can be set with an environment variable, e.g.
    ``PIXELGRID_LAYOUT=square`` or ``PIXELGRID_MAX_CONCURRENCY=4``.
    """

    layout: GridLayout = GridLayout.EXACT
    truncation: Truncation = Truncation.HIGH_BYTE
    premultiply_alpha: bool = False
    max_concurrency: Optional[int] = Field(default=None, ge=1)
    fail_fast: bool = False
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="PIXELGRID_",
        env_file=PIXELGRID_ENV_FILENAME,
        extra="ignore",
        frozen=True,
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v!r}")
        return level


def load_settings(env_file: Union[str, Path, None] = None, **overrides: Any) -> PipelineSettings:
    """
    Load settings from the environment, an optional env file and keyword overrides.

    Raises:
        ConfigurationError: If any value is invalid.
    """
    kwargs = {k: v for k, v in overrides.items() if v is not None}
    if env_file is not None:
        kwargs["_env_file"] = env_file
    try:
        return PipelineSettings(**kwargs)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid pixelgrid settings: {e}") from e


def configure_logging(settings: Optional[PipelineSettings] = None) -> None:
    """Install a basic console handler at the configured level."""
    settings = settings or load_settings()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    logging.getLogger("pixelgrid").setLevel(settings.log_level)
    # Pillow logs every plugin probe at DEBUG.
    logging.getLogger("PIL").setLevel(max(logging.INFO, logging.getLevelName(settings.log_level)))
