"""Settings for the Skyverse terrain client."""
from __future__ import annotations

from typing import Any

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "SKYVERSE_"}

    # Credentials sent with every tile lookup
    api_key: str = ""
    api_key_header: str = "SKYVERSE_KEY"

    # Base URL for tile lookups; the query string is appended verbatim
    endpoint: str = ""

    http_timeout_s: int = 25
    user_agent: str = "skyverse-terrain/0.1.0"

    log_level: str = "INFO"


def load_settings(**overrides: Any) -> Settings:
    """Build settings from ``SKYVERSE_*`` env vars, with explicit overrides on top.

    ``None`` overrides are ignored so CLI flags that were not given fall
    through to the environment.
    """
    return Settings(**{k: v for k, v in overrides.items() if v is not None})
