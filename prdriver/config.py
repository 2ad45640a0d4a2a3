"""Runtime settings loaded from a config file and the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from dotenv import dotenv_values

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_MODEL = "openhands/claude-sonnet-4-5-20250929"
DEFAULT_STATUS_API = "compat"
DEFAULT_REQUEST_TIMEOUT = 30.0


@dataclass
class Settings:
    base_url: str = DEFAULT_BASE_URL
    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    llm_api_key: str = ""
    status_api: str = DEFAULT_STATUS_API
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    debug: bool = False


def get_config_path() -> Path:
    """Determine config file path, respecting PRDRIVER_CONFIG env var."""
    config_path = os.environ.get("PRDRIVER_CONFIG")
    if config_path:
        return Path(config_path)
    config_home = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return config_home / "prdriver" / "config.env"


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def load_settings(config_path: Path | None = None) -> Settings:
    """Build settings from the config file, then the process environment.

    Environment variables win over the file; CLI flags are applied later by
    the caller.
    """
    path = config_path or get_config_path()
    values: Dict[str, Optional[str]] = {}
    if path.is_file():
        values.update(dotenv_values(path))
    for key in (
        "OPENHANDS_BASE_URL",
        "OPENHANDS_API_KEY",
        "LLM_MODEL",
        "LLM_API_KEY",
        "PRDRIVER_STATUS_API",
        "PRDRIVER_REQUEST_TIMEOUT",
        "DEBUG",
    ):
        if key in os.environ:
            values[key] = os.environ[key]

    timeout_raw = values.get("PRDRIVER_REQUEST_TIMEOUT")
    try:
        request_timeout = float(timeout_raw) if timeout_raw else DEFAULT_REQUEST_TIMEOUT
    except ValueError:
        request_timeout = DEFAULT_REQUEST_TIMEOUT

    return Settings(
        base_url=values.get("OPENHANDS_BASE_URL") or DEFAULT_BASE_URL,
        api_key=values.get("OPENHANDS_API_KEY") or None,
        model=values.get("LLM_MODEL") or DEFAULT_MODEL,
        llm_api_key=values.get("LLM_API_KEY") or "",
        status_api=values.get("PRDRIVER_STATUS_API") or DEFAULT_STATUS_API,
        request_timeout=request_timeout,
        debug=_truthy(values.get("DEBUG")),
    )
