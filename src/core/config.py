"""Client configuration.

Why here:
- Centralises environment variables (pydantic-settings) without leaking into the CLI.
- Lets adapters (HTTP client, CMS client) read configuration consistently.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no extra dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "cms-client"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "cms-client"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "cms-client"
    return Path.home() / ".config" / "cms-client"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str]) -> Path:
    """Write or update variables in the user's global .env file."""

    env_path = get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# cms-client user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class ClientSettings(BaseSettings):
    """Central client configuration.

    Why pydantic-settings:
    - Typing + validation at the edge (env vars) without cluttering the core.
    - One configuration contract shared by the CLI and the adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="CMS_CLIENT_",
        extra="ignore",
        case_sensitive=False,
        # Project first (dev), then the user's global config.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    url: str = Field(
        default="http://127.0.0.1:1337",
        min_length=1,
        description="Base URL of the CMS instance.",
    )
    prefix: str = Field(
        default="/api",
        description="Path prefix of the REST API (may be empty).",
    )
    jwt: str | None = Field(
        default=None,
        description="Bearer token (long-lived API token or a login JWT).",
    )
    content_types: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Content types known to the client (short or fully-qualified names).",
    )

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Per-request timeout (seconds).",
    )
    user_agent: str = Field(
        default="cms-client/0.1",
        min_length=1,
        description="User-Agent sent with every request.",
    )
    max_requests_per_second: float | None = Field(
        default=None,
        gt=0,
        description="Space request start times so no more than this many start per second.",
    )
    parse_dates: bool = Field(
        default=True,
        description="Convert ISO-8601 strings on date-like keys into datetimes.",
    )
    debug: bool = Field(
        default=False,
        description="Verbose diagnostics (DEBUG logging in the CLI).",
    )

    @field_validator("content_types", mode="before")
    @classmethod
    def _split_content_types(cls, value: object) -> object:
        # Env vars arrive as "page,article" or a JSON list.
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return []
            if text.startswith("["):
                return json.loads(text)
            return [part.strip() for part in text.split(",") if part.strip()]
        return value
