"""Configuration loading with environment variable integration and validation."""

import os
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

from .types import PagesE2EConfig
from .errors import ConfigurationError

ENV_PREFIX = "PAGES_E2E_"
# Token variable understood by the platform's own tooling
API_TOKEN_ENV = "CLOUDFLARE_API_TOKEN"


def load_env_overrides(prefix: str = ENV_PREFIX) -> Dict[str, Any]:
    """Load environment variables with the given prefix; empty variables are ignored."""
    overrides: Dict[str, Any] = {}

    for key, value in os.environ.items():
        if key.startswith(prefix):
            field_name = key[len(prefix) :].lower()

            # Nested configuration (e.g., PAGES_E2E_TIMEOUTS__MUTEX_TIMEOUT)
            if "__" in field_name:
                parts = field_name.split("__")
                if len(parts) == 2:
                    section, sub_field = parts
                    converted = _convert_env_value(value)
                    if converted is not None:
                        overrides.setdefault(section, {})[sub_field] = converted
                continue

            converted = _convert_env_value(value)
            if converted is not None:
                overrides[field_name] = converted

    return overrides


def _convert_env_value(value: str) -> Any:
    """Strip surrounding whitespace; typing is left to the pydantic models."""
    value = value.strip()
    return value or None


def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Merge overrides into base, descending into nested mappings."""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """Builds the single configuration object used for a run."""

    def __init__(self) -> None:
        self._config: Optional[PagesE2EConfig] = None

    def load_config(
        self, config_file: Optional[Path] = None, **overrides: Any
    ) -> PagesE2EConfig:
        """Load configuration from file and environment with CLI overrides."""

        # Precedence, highest first:
        # 1. CLI overrides
        # 2. Environment variables
        # 3. Config file data
        # 4. Model defaults

        config_data: Dict[str, Any] = {}

        if config_file is not None:
            if not config_file.exists():
                raise ConfigurationError(f"Config file not found: {config_file}")
            config_data = _merge(config_data, self._load_from_file(config_file))

        config_data = _merge(config_data, load_env_overrides())

        if "api_token" not in config_data and os.environ.get(API_TOKEN_ENV):
            config_data["api_token"] = os.environ[API_TOKEN_ENV]

        config_data = _merge(
            config_data, {k: v for k, v in overrides.items() if v is not None}
        )

        self._config = PagesE2EConfig(**config_data)
        return self._config

    def get_config(self) -> PagesE2EConfig:
        """Get the loaded configuration, loading defaults on first use."""
        if self._config is None:
            self._config = self.load_config()
        return self._config

    def _load_from_file(self, config_file: Path) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        if config_file.suffix.lower() not in (".yml", ".yaml"):
            raise ConfigurationError(
                f"Unsupported config file format: {config_file.suffix}"
            )
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                return yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to load config file {config_file}: {e}"
            ) from e


# Global configuration manager
_config_manager = ConfigManager()


def load_config(config_file: Optional[Path] = None, **kwargs: Any) -> PagesE2EConfig:
    """Load configuration using the global manager."""
    return _config_manager.load_config(config_file, **kwargs)


def get_config() -> PagesE2EConfig:
    """Get the current configuration."""
    return _config_manager.get_config()
