"""
Runtime configuration for the translation pipeline.

Values come from the process environment, optionally seeded from a ``.env``
file in the working directory. Nothing here is read at import time; call
``get_config()`` once at startup and pass the result around.
"""

from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

_config: Optional["Settings"] = None


class Settings(BaseModel):
    """Pipeline settings."""

    # Generation service
    generation_url: str = Field(
        "https://api.openai.com/v1/chat/completions",
        description="Chat-completions endpoint (URL_CHATGPT)",
    )
    api_key: Optional[str] = Field(None, description="Bearer credential (OPENAI_API_KEY)")
    model: str = Field("gpt-4o", description="Model identifier sent with every request")
    request_timeout_seconds: float = Field(
        120.0, gt=0, description="Read timeout for a single generation call"
    )
    connect_timeout_seconds: float = Field(10.0, gt=0)

    # Store
    database_url: Optional[str] = Field(None, description="PostgreSQL DSN (DATABASE_URL)")
    source_language: str = Field("english", description="Canonical source language tag")

    # Outputs
    log_dir: str = Field("logs", description="Directory for usage and incident ledgers")
    incomplete_report_path: str = Field("incomplete_route_names.json")
    medicine_url_base: str = Field(
        "https://www.dawaadost.com/medicine",
        description="Prefix used when listing route keys as URLs in reports",
    )

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """Build settings from environment variables (after loading .env)."""
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        values = {}
        mapping = {
            "generation_url": "URL_CHATGPT",
            "api_key": "OPENAI_API_KEY",
            "model": "MEDTRANS_MODEL",
            "request_timeout_seconds": "MEDTRANS_REQUEST_TIMEOUT",
            "database_url": "DATABASE_URL",
            "source_language": "MEDTRANS_SOURCE_LANGUAGE",
            "log_dir": "MEDTRANS_LOG_DIR",
            "medicine_url_base": "MEDTRANS_MEDICINE_URL_BASE",
        }
        for field_name, env_name in mapping.items():
            raw = os.environ.get(env_name)
            if raw:
                values[field_name] = raw
        return cls(**values)


def get_config(reload: bool = False) -> Settings:
    """Return process settings, loading them on first use."""
    global _config
    if _config is None or reload:
        _config = Settings.from_env()
    return _config
