"""Configuration loading for Registrar.

Settings are built once at process entry (CLI or application factory) and
passed to the components that need them.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

ENV_PREFIX = "REGISTRAR_"
MIN_SECRET_LENGTH = 16
ENVIRONMENTS = ("development", "production")


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""


@dataclass
class Settings:
    """Registrar runtime settings."""

    jwt_secret: str
    database_url: str = "sqlite:///registrar.db"
    jwt_expires_minutes: int = 7 * 24 * 60
    environment: str = "development"
    allowed_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )
    admin_email: str = "admin@example.com"
    admin_password: str | None = None
    admin_first_name: str = "System"
    admin_last_name: str = "Administrator"
    max_login_attempts: int = 5
    lock_minutes: int = 15
    log_dir: str = "logs"
    log_level: str = "INFO"
    db_connect_retries: int = 5
    db_connect_backoff: float = 0.5

    def __post_init__(self) -> None:
        if not self.jwt_secret:
            raise ConfigError("jwt_secret is required (set REGISTRAR_JWT_SECRET)")
        if len(self.jwt_secret) < MIN_SECRET_LENGTH:
            raise ConfigError(f"jwt_secret must be at least {MIN_SECRET_LENGTH} characters")
        if self.environment not in ENVIRONMENTS:
            raise ConfigError(
                f"environment must be one of {', '.join(ENVIRONMENTS)}, got {self.environment!r}"
            )
        if self.jwt_expires_minutes < 1:
            raise ConfigError("jwt_expires_minutes must be positive")
        if self.max_login_attempts < 1:
            raise ConfigError("max_login_attempts must be positive")
        if self.db_connect_retries < 1:
            raise ConfigError("db_connect_retries must be at least 1")
        if self.admin_password is not None and len(self.admin_password) < 6:
            raise ConfigError("admin_password must be at least 6 characters")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Settings:
        """Create settings from a mapping of raw values.

        String values (as found in environment variables) are converted to the
        field's type. Unknown keys are rejected.

        Raises:
            ConfigError: If a key is unknown or a value cannot be converted.
        """
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ConfigError(f"Unknown settings: {', '.join(unknown)}")

        values: dict[str, Any] = {}
        for name, raw in data.items():
            values[name] = _coerce(name, known[name].type, raw)

        if "jwt_secret" not in values:
            raise ConfigError("jwt_secret is required (set REGISTRAR_JWT_SECRET)")
        return cls(**values)


def _coerce(name: str, type_name: Any, raw: Any) -> Any:
    """Convert a raw config value to the declared field type."""
    if raw is None:
        return None
    type_name = str(type_name)
    try:
        if type_name.startswith("int"):
            return int(raw)
        if type_name.startswith("float"):
            return float(raw)
        if type_name.startswith("list"):
            if isinstance(raw, str):
                return [item.strip() for item in raw.split(",") if item.strip()]
            return [str(item) for item in raw]
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {raw!r}") from e
    return str(raw)


def _read_yaml(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration must be a YAML mapping, got {type(data).__name__}")
    return data


def load_settings(
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from an optional YAML file overlaid with environment variables.

    Environment variables use the ``REGISTRAR_`` prefix and the upper-cased
    field name, e.g. ``REGISTRAR_DATABASE_URL``.

    Args:
        config_path: Path to a YAML mapping of settings (optional).
        environ: Environment mapping. Defaults to ``os.environ``.

    Returns:
        Validated settings.

    Raises:
        ConfigError: If the file is invalid or a required value is missing.
    """
    data: dict[str, Any] = {}
    if config_path is not None:
        data.update(_read_yaml(Path(config_path)))

    if environ is None:
        environ = os.environ
    for f in fields(Settings):
        key = f"{ENV_PREFIX}{f.name.upper()}"
        if key in environ:
            data[f.name] = environ[key]

    return Settings.from_dict(data)
