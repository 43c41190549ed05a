"""Configuration loading utilities."""

import json
import os
from pathlib import Path
from typing import Any, Callable

from loguru import logger

from milobanana.config.schema import Config

# Environment names used by earlier deployments -> (section, field, caster)
LEGACY_ENV_VARS: dict[str, tuple[str, str, Callable[[str], Any]]] = {
    "ADMIN_PASSWORD": ("auth", "admin_password", str),
    "JWT_SECRET": ("auth", "jwt_secret", str),
    "WECHAT_APP_ID": ("wechat", "app_id", str),
    "WECHAT_APP_SECRET": ("wechat", "app_secret", str),
    "PORT": ("server", "port", int),
    "CORS_ORIGINS": ("server", "cors_origins", lambda raw: [o.strip() for o in raw.split(",") if o.strip()]),
    "DATABASE_PATH": ("storage", "db_path", str),
}


def get_config_path() -> Path:
    """Get the configuration file path (MILOBANANA_CONFIG or ~/.milobanana/config.json)."""
    override = os.environ.get("MILOBANANA_CONFIG", "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".milobanana" / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file, environment and legacy environment names.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object.
    """
    path = config_path or get_config_path()
    data: dict[str, Any] = {}

    if path.exists():
        try:
            with open(path) as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(
                f"Failed to load config from {path}: {e}. "
                "Fix the file or remove it to use defaults."
            ) from e
        if not isinstance(raw, dict):
            raise ValueError(f"Failed to load config from {path}: top-level value must be an object")
        data = convert_keys(raw)

    try:
        cfg = Config(**data)
    except ValueError as e:
        raise ValueError(f"Invalid configuration: {e}") from e
    _apply_legacy_env_vars(cfg)
    return cfg


def save_config(config: Config, config_path: Path | None = None) -> None:
    """Save configuration to file (camelCase keys)."""
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    data = convert_to_camel(config.model_dump())
    with open(path, "w") as f:
        json.dump(data, f, indent=2)


def _apply_legacy_env_vars(cfg: Config) -> None:
    """Fill settings still at their default from legacy env names (ADMIN_PASSWORD, JWT_SECRET, ...)."""
    defaults = Config.model_construct()
    for env_name, (section, field, caster) in LEGACY_ENV_VARS.items():
        raw = os.environ.get(env_name)
        if raw is None or not raw.strip():
            continue
        target = getattr(cfg, section)
        if getattr(target, field) != getattr(getattr(defaults, section), field):
            continue
        try:
            setattr(target, field, caster(raw.strip()))
        except ValueError:
            logger.warning("Ignoring invalid value for {}: {!r}", env_name, raw)


def convert_keys(data: Any) -> Any:
    """Convert camelCase keys to snake_case for Pydantic."""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any) -> Any:
    """Convert snake_case keys to camelCase."""
    if isinstance(data, dict):
        return {snake_to_camel(k): convert_to_camel(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)


def snake_to_camel(name: str) -> str:
    """Convert snake_case to camelCase."""
    components = name.split("_")
    return components[0] + "".join(x.title() for x in components[1:])
