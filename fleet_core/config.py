# =============================================================================
# fleet_core/config.py
# Application Configuration for FleetOps
# =============================================================================
"""
Configuration is assembled from three sources, later ones winning:

1. ``.env`` in the working directory (python-dotenv, loaded into os.environ)
2. ``.streamlit/secrets.toml``::

       [supabase]
       url = "https://your-project.supabase.co"
       key = "your-anon-key"

       [fleet]
       storage_prefix = "futamaq"
       id_lookup_timeout = 3.0

3. Environment variables: ``SUPABASE_URL``, ``SUPABASE_KEY`` and ``FLEET_*``
   (e.g. ``FLEET_PERSIST_DEBOUNCE=0.5``).

When no Supabase URL/key is configured the app runs in local-only mode.
"""

from __future__ import annotations
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import toml
from dotenv import load_dotenv

from fleet_core.errors import ConfigurationError
from fleet_core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SECRETS_PATH = Path(".streamlit") / "secrets.toml"


@dataclass(frozen=True)
class AppConfig:
    """Settings for one application session."""
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    storage_bucket: str = "images"
    storage_prefix: str = "futamaq"
    local_db_path: str = "local_data/fleetops.db"
    id_lookup_timeout: float = 3.0
    persist_debounce: float = 0.5
    work_order_sequence_rpc: Optional[str] = None
    realtime_enabled: bool = True
    log_level: str = "INFO"

    @property
    def remote_enabled(self) -> bool:
        """True when a remote store is configured for this session."""
        return bool(self.supabase_url and self.supabase_key)

    def with_overrides(self, **overrides: Any) -> AppConfig:
        return _validated(replace(self, **overrides))


_FLOAT_FIELDS = ("id_lookup_timeout", "persist_debounce")
_BOOL_FIELDS = ("realtime_enabled",)
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _coerce(name: str, value: Any) -> Any:
    if name in _FLOAT_FIELDS:
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"Invalid value for {name}: {value!r}",
                config_key=name,
                expected_type="float",
            )
    if name in _BOOL_FIELDS:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        raise ConfigurationError(
            f"Invalid value for {name}: {value!r}",
            config_key=name,
            expected_type="bool",
        )
    if value == "":
        return None
    return value


def _validated(config: AppConfig) -> AppConfig:
    if config.id_lookup_timeout <= 0:
        raise ConfigurationError(
            "id_lookup_timeout must be positive",
            config_key="id_lookup_timeout",
            expected_type="float > 0",
        )
    if config.persist_debounce < 0:
        raise ConfigurationError(
            "persist_debounce cannot be negative",
            config_key="persist_debounce",
            expected_type="float >= 0",
        )
    if not config.storage_prefix:
        raise ConfigurationError("storage_prefix cannot be empty", config_key="storage_prefix")
    return config


def _read_secrets(path: Path) -> Dict[str, Any]:
    """Flatten the [supabase] and [fleet] tables of a secrets.toml file."""
    if not path.exists():
        return {}

    try:
        data = toml.load(path)
    except (toml.TomlDecodeError, OSError) as e:
        raise ConfigurationError(f"Could not read {path}: {e}", config_key=str(path))

    values: Dict[str, Any] = {}
    supabase = data.get("supabase", {})
    if "url" in supabase:
        values["supabase_url"] = supabase["url"]
    if "key" in supabase:
        values["supabase_key"] = supabase["key"]
    values.update(data.get("fleet", {}))
    return values


def _read_env(env: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    if env.get("SUPABASE_URL"):
        values["supabase_url"] = env["SUPABASE_URL"]
    if env.get("SUPABASE_KEY"):
        values["supabase_key"] = env["SUPABASE_KEY"]
    for f in fields(AppConfig):
        env_name = f"FLEET_{f.name.upper()}"
        if env_name in env:
            values[f.name] = env[env_name]
    return values


def load_config(
    secrets_path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    use_dotenv: bool = True,
) -> AppConfig:
    """
    Build an AppConfig from .env, secrets.toml and the environment.

    Args:
        secrets_path: Path to a secrets.toml file (default: .streamlit/secrets.toml)
        env: Mapping used instead of os.environ (tests)
        use_dotenv: Whether to load a .env file into os.environ first

    Returns:
        Validated AppConfig

    Raises:
        ConfigurationError: if a value has the wrong type or range
    """
    if use_dotenv and env is None:
        load_dotenv()

    known = {f.name for f in fields(AppConfig)}
    merged: Dict[str, Any] = {}
    merged.update(_read_secrets(secrets_path or DEFAULT_SECRETS_PATH))
    merged.update(_read_env(os.environ if env is None else env))

    unknown = sorted(set(merged) - known)
    if unknown:
        logger.warning(f"Ignoring unknown configuration keys: {unknown}")

    kwargs = {name: _coerce(name, value) for name, value in merged.items() if name in known}
    config = _validated(AppConfig(**kwargs))

    logger.info(
        f"Configuration loaded (remote={'on' if config.remote_enabled else 'off'}, "
        f"prefix={config.storage_prefix})"
    )
    return config
