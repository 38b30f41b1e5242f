"""Configuration loader for Yalt."""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_ENV_VAR = "YALT_CONFIG"


class DatabaseConfig(BaseModel):
    """Database configuration for the translation store."""

    url: str = Field(default="sqlite+aiosqlite:///data/yalt.db")
    echo: bool = Field(default=False)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO")
    file: str | None = Field(default=None)


class YaltSettings(BaseModel):
    """Complete Yalt settings."""

    locales: dict[str, list[str]] = Field(
        default_factory=dict, description="Language code -> region variants"
    )
    locale_separator: str = Field(default="-", min_length=1)
    locale_key: str = Field(default="locale", description="Locale column on translation tables")
    locale: str = Field(default="en", description="Application default locale")
    fallback_locale: str | None = Field(default=None)
    use_fallback: bool = Field(default=False)
    loads_translations: bool = Field(default=False)
    translation_suffix: str = Field(default="translations")
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("locales", mode="before")
    @classmethod
    def normalize_locales(cls, v: Any) -> Any:
        """Accept a plain list of codes and null variant lists."""
        if v is None:
            return {}
        if isinstance(v, (list, tuple)):
            normalized: dict[str, list[str]] = {}
            for item in v:
                if isinstance(item, dict):
                    normalized.update(
                        {key: list(variants or []) for key, variants in item.items()}
                    )
                else:
                    normalized[str(item)] = []
            return normalized
        if isinstance(v, dict):
            return {str(key): list(variants or []) for key, variants in v.items()}
        return v


def find_config_file() -> Path | None:
    """Find yalt.yaml: YALT_CONFIG env, project root, or cwd."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        path = Path(env_path)
        if path.exists():
            return path

    current = Path(__file__).resolve()
    for parent in current.parents:
        config_path = parent / "config" / "yalt.yaml"
        if config_path.exists():
            return config_path
        if (parent / "pyproject.toml").exists():
            break

    cwd_config = Path("config/yalt.yaml")
    if cwd_config.exists():
        return cwd_config

    return None


def load_settings_from_file(path: Path) -> dict[str, Any]:
    """Load settings dict from a YAML file."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data or {}


_settings_override: YaltSettings | None = None


@lru_cache(maxsize=1)
def get_settings() -> YaltSettings:
    """Get Yalt settings (cached)."""
    if _settings_override is not None:
        return _settings_override

    config_path = find_config_file()

    if config_path:
        try:
            data = load_settings_from_file(config_path)
            return YaltSettings.model_validate(data)
        except Exception as e:
            logging.getLogger("yalt.config").warning(f"Failed to load config from {config_path}: {e}. Using defaults")

    return YaltSettings()


def reset_settings() -> None:
    """Clear cached settings and everything derived from them."""
    # Imported here to avoid a cycle: locales reads settings on first use.
    from src.yalt.core.locales import get_locale_registry

    get_settings.cache_clear()
    get_locale_registry.cache_clear()


def use_settings(settings: YaltSettings | None) -> None:
    """Install explicit settings, or drop the override with None."""
    global _settings_override
    _settings_override = settings
    reset_settings()


def reload_settings() -> YaltSettings:
    """Force reload settings from file."""
    reset_settings()
    return get_settings()
