"""Application configuration.

Environment variables (prefix `MT_`) and `.env` files are read through
pydantic-settings, so the CLI and the adapters share one typed contract.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.domain.models import OutputFormat

APP_NAME = "mt"


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no extra dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / APP_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / APP_NAME
    return Path.home() / ".config" / APP_NAME


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


class AppSettings(BaseSettings):
    """Central configuration of the application."""

    model_config = SettingsConfigDict(
        env_prefix="MT_",
        extra="ignore",
        case_sensitive=False,
        # Project first (development), then the user's global config.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout per request (seconds). Streaming reads wait indefinitely.",
    )
    user_agent: str = Field(
        default="mt/0.1",
        min_length=1,
        description="User-Agent sent to MTConnect agents.",
    )
    log_level: str = Field(
        default="WARNING",
        description="Root log level (DEBUG, INFO, WARNING, ERROR).",
    )
    agent_url: str | None = Field(
        default=None,
        description="Agent to connect to at startup, as if `connect <url>` had been run.",
    )
    default_format: OutputFormat = Field(
        default=OutputFormat.XML,
        description="Initial value of the Format option.",
    )
