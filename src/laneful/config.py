"""Configuration with environment variable support.

All settings can be configured via environment variables with the LANEFUL_ prefix.
Example: LANEFUL_WEBHOOK_SECRET=... sets webhook_secret.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def load_config_from_file(path: str | Path) -> dict[str, Any]:
    """Load configuration from a YAML or TOML file.

    Args:
        path: Path to the configuration file (.yaml, .yml, or .toml)

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the config file has encoding errors, invalid syntax, or unsupported format
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ValueError(f"Config file encoding error in {path}: {e}") from e

    try:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content) or {}
        elif path.suffix == ".toml":
            data = tomllib.loads(content)
        else:
            raise ValueError(f"Unsupported config format: {path.suffix}")
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    # Allow an optional top-level [laneful] section.
    return data.get("laneful", data)


class LanefulConfig(BaseSettings):
    """SDK settings.

    All settings can be overridden via environment variables:
    - LANEFUL_BASE_URL: Account API endpoint (https://<name>.send.laneful.net)
    - LANEFUL_AUTH_TOKEN: API token
    - LANEFUL_WEBHOOK_SECRET: Secret used to verify webhook signatures
    - LANEFUL_TIMEOUT: HTTP timeout in seconds
    - LANEFUL_LOG_LEVEL: debug, info, warning or error
    """

    model_config = SettingsConfigDict(
        env_prefix="LANEFUL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str | None = Field(
        default=None,
        description="Base URL of the account's Laneful API endpoint.",
    )
    auth_token: str | None = Field(
        default=None,
        repr=False,
        description="Bearer token for the email API.",
    )
    webhook_secret: str | None = Field(
        default=None,
        repr=False,
        description="Shared secret for webhook signature verification.",
    )
    timeout: float = Field(
        default=30.0,
        description="HTTP connect/read/write timeout in seconds.",
    )
    log_level: str = Field(
        default="warning",
        description="Log level for the CLI: debug, info, warning or error.",
    )

    @classmethod
    def from_file(cls, path: str | Path) -> LanefulConfig:
        """Build settings from a YAML/TOML file; environment variables still apply
        to keys the file leaves out."""
        return cls(**load_config_from_file(path))

    def to_display_dict(self) -> dict[str, Any]:
        """Settings for display, with secrets masked."""
        return {
            "base_url": self.base_url,
            "auth_token": "***" if self.auth_token else None,
            "webhook_secret": "***" if self.webhook_secret else None,
            "timeout": self.timeout,
            "log_level": self.log_level,
        }


_config: LanefulConfig | None = None


def get_config() -> LanefulConfig:
    """Get the global configuration instance.

    Returns a cached instance of LanefulConfig that reads from environment variables.
    To reload config (e.g., in tests), call clear_config() first.
    """
    global _config
    if _config is None:
        _config = LanefulConfig()
    return _config


def clear_config() -> None:
    """Clear the cached configuration.

    Call this to force reloading of environment variables on next get_config() call.
    Useful for testing.
    """
    global _config
    _config = None
