"""Settings for rmadmin, loaded from YAML with environment overrides.

Configuration:
    The settings file defaults to config/rmadmin.yaml (or $RMADMIN_CONFIG).
    Environment variables override YAML values:
      - RMADMIN_ADMIN_URL: admin service base URL
      - RMADMIN_ADMIN_TOKEN: bearer token sent to the admin service
      - RMADMIN_HA_ENABLED: true/false
      - RMADMIN_TIMEOUT: request timeout in seconds
      - RMADMIN_LABEL_STORE_KIND: filesystem or memory
      - RMADMIN_LABEL_STORE_PATH: directory of the standalone label store
      - RMADMIN_DEBUG: true/false
"""

import os
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional

import structlog
import yaml
from pydantic import BaseModel, Field, ValidationError

from rmadmin.errors import ConfigError

logger = structlog.get_logger(__name__)

DEFAULT_CONFIG_PATH = "config/rmadmin.yaml"
DEFAULT_ADMIN_URL = "http://localhost:8033"
DEFAULT_STORE_PATH = str(Path.home() / ".rmadmin" / "node-labels")

# env var -> (section, key); section None means top level
ENV_OVERRIDES: dict[str, tuple[Optional[str], str]] = {
    "RMADMIN_ADMIN_URL": (None, "admin_url"),
    "RMADMIN_ADMIN_TOKEN": (None, "admin_token"),
    "RMADMIN_HA_ENABLED": (None, "ha_enabled"),
    "RMADMIN_TIMEOUT": (None, "timeout"),
    "RMADMIN_DEBUG": (None, "debug"),
    "RMADMIN_LABEL_STORE_KIND": ("label_store", "kind"),
    "RMADMIN_LABEL_STORE_PATH": ("label_store", "path"),
}


class StoreKind(str, Enum):
    """Label store implementations known to rmadmin."""

    FILESYSTEM = "filesystem"
    MEMORY = "memory"


class StoreSettings(BaseModel):
    """Where the standalone label store lives."""

    kind: StoreKind = Field(default=StoreKind.FILESYSTEM, description="Store implementation")
    path: str = Field(default=DEFAULT_STORE_PATH, description="Store root directory")


class AdminSettings(BaseModel):
    """Connection and store settings for one rmadmin invocation.

    Attributes:
        admin_url: Base URL of the resource manager admin service.
        admin_token: Optional bearer token.
        timeout: Per-request timeout in seconds.
        connect_max_retries: Extra connection attempts after the first one.
        connect_retry_interval: Seconds to sleep between connection attempts.
        connect_max_wait: Upper bound in seconds on time spent connecting.
        ha_enabled: Whether the resource manager runs in HA mode.
        debug: Verbose logging.
        label_store: Standalone label store location.
    """

    admin_url: str = Field(default=DEFAULT_ADMIN_URL)
    admin_token: Optional[str] = Field(default=None)
    timeout: float = Field(default=30.0, gt=0)
    connect_max_retries: int = Field(default=10, ge=0)
    connect_retry_interval: float = Field(default=30.0, ge=0)
    connect_max_wait: float = Field(default=900.0, ge=0)
    ha_enabled: bool = Field(default=False)
    debug: bool = Field(default=False)
    label_store: StoreSettings = Field(default_factory=StoreSettings)

    def fast_fail(self) -> "AdminSettings":
        """Copy of these settings with connection retries disabled."""
        return self.model_copy(
            update={
                "connect_max_retries": 0,
                "connect_retry_interval": 0.0,
                "connect_max_wait": 0.0,
            }
        )


def load_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping; a missing file yields an empty mapping."""
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot read settings file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping")
    return data


def apply_env_overrides(data: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    merged = dict(data)
    for var, (section, key) in ENV_OVERRIDES.items():
        value = env.get(var)
        if value is None or value == "":
            continue
        if section is None:
            merged[key] = value
        else:
            nested = dict(merged.get(section) or {})
            nested[key] = value
            merged[section] = nested
    return merged


def load_settings(
    config_path: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> AdminSettings:
    """Build settings from the YAML file, the environment and explicit overrides.

    Args:
        config_path: Settings file; defaults to $RMADMIN_CONFIG or config/rmadmin.yaml.
        env: Environment mapping, os.environ when omitted.
        **overrides: Top-level values that win over file and environment
            (e.g. admin_url from the command line). None values are ignored.

    Raises:
        ConfigError: If the file cannot be parsed or a value is invalid.
    """
    env = os.environ if env is None else env
    path = Path(config_path or env.get("RMADMIN_CONFIG") or DEFAULT_CONFIG_PATH).expanduser()

    data = apply_env_overrides(load_yaml(path), env)
    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        settings = AdminSettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc

    logger.debug(
        "settings_loaded",
        path=str(path),
        admin_url=settings.admin_url,
        ha_enabled=settings.ha_enabled,
        label_store=settings.label_store.kind.value,
    )
    return settings
