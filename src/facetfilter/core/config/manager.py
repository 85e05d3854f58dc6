"""
Configuration Manager

Builds an EngineConfig from layered sources. Later layers win:

    defaults < config file < FACETFILTER_* environment variables < overrides
"""

import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import yaml
from pydantic import ValidationError

from facetfilter.core.config.models import EngineConfig
from facetfilter.core.exceptions import ConfigurationError, ErrorCode


TRUE_VALUES = {'true', '1', 'yes', 'on', 'enabled'}


def parse_bool(value: Union[str, bool]) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUE_VALUES


def parse_list(value: Union[str, List[str]]) -> List[str]:
    """Split a comma separated string, dropping blanks."""
    if isinstance(value, list):
        return value
    return [item.strip() for item in str(value).split(',') if item.strip()]


# environment variable suffix -> (path into the config dict, parser)
ENV_FIELDS: Dict[str, Tuple[Tuple[str, ...], Callable[[str], Any]]] = {
    "FILTER_MODE": (("filters", "mode"), str),
    "GROUP_MODE": (("filters", "group_mode"), str),
    "EXCLUSIVE_TYPES": (("filters", "exclusive_types"), parse_list),
    "CATEGORIES_FIELD": (("filters", "categories_field"), str),
    "SEARCH_KEYS": (("search", "keys"), parse_list),
    "MIN_SEARCH_LENGTH": (("search", "min_length"), int),
    "HISTOGRAM_BINS": (("ranges", "histogram_bins"), int),
    "ITEMS_PER_PAGE": (("pagination", "items_per_page"), int),
    "STATE_EXPIRY": (("persistence", "state_expiry"), float),
    "SNAPSHOT_PATH": (("persistence", "snapshot_path"), str),
    "PRESET_DIR": (("persistence", "preset_dir"), str),
    "DEBUG": (("debug",), parse_bool),
}


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """
    Locates, layers and validates engine configuration.

    With no explicit file the first existing default location is used:
    ``./facetfilter.yaml``, ``./facetfilter.yml``, ``./.facetfilter.yaml``,
    ``~/.config/facetfilter/config.yaml`` and then
    ``$XDG_CONFIG_HOME/facetfilter/config.yaml``.
    """

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        self.config_file = Path(config_file) if config_file else None
        self._config: Optional[EngineConfig] = None
        self._config_paths = self._default_paths()

    @staticmethod
    def _default_paths() -> List[Path]:
        cwd = Path.cwd()
        paths = [
            cwd / "facetfilter.yaml",
            cwd / "facetfilter.yml",
            cwd / ".facetfilter.yaml",
            Path.home() / ".config" / "facetfilter" / "config.yaml",
        ]
        xdg_config = os.environ.get('XDG_CONFIG_HOME')
        if xdg_config:
            paths.append(Path(xdg_config) / "facetfilter" / "config.yaml")
        return paths

    @property
    def config(self) -> Optional[EngineConfig]:
        """The configuration returned by the last ``load_config`` call."""
        return self._config

    def load_config(
        self,
        overrides: Optional[Dict[str, Any]] = None,
        env_prefix: str = "FACETFILTER_",
    ) -> EngineConfig:
        """
        Load and validate configuration from all layers.

        Args:
            overrides: Nested dictionary applied last
            env_prefix: Prefix of the environment variables to read

        Raises:
            ConfigurationError: If a file is missing or malformed, or a value is invalid
        """
        data = self._read_file() or {}
        data = deep_merge(data, self._read_env(env_prefix))
        if overrides:
            data = deep_merge(data, overrides)

        try:
            self._config = EngineConfig(**data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Configuration validation failed: {e}",
                ErrorCode.CONFIG_SCHEMA_VALIDATION,
                cause=e,
            )
        return self._config

    def _find_file(self) -> Optional[Path]:
        if self.config_file is not None:
            if not self.config_file.exists():
                raise ConfigurationError(
                    f"Configuration file not found: {self.config_file}",
                    ErrorCode.CONFIG_FILE_NOT_FOUND,
                    file_path=str(self.config_file),
                )
            return self.config_file
        return next((p for p in self._config_paths if p.is_file()), None)

    def _read_file(self) -> Optional[Dict[str, Any]]:
        path = self._find_file()
        if path is None:
            return None

        try:
            text = path.read_text(encoding='utf-8')
            data = json.loads(text) if path.suffix.lower() == '.json' else yaml.safe_load(text)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Failed to load config file {path}: {e}",
                ErrorCode.CONFIG_INVALID_FORMAT,
                file_path=str(path),
                cause=e,
            )

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file must contain a mapping, got {type(data).__name__}",
                ErrorCode.CONFIG_INVALID_FORMAT,
                file_path=str(path),
            )
        return data

    @staticmethod
    def _read_env(prefix: str) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for suffix, (path, parser) in ENV_FIELDS.items():
            env_var = f"{prefix}{suffix}"
            raw = os.environ.get(env_var)
            if raw is None:
                continue
            try:
                value = parser(raw)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Invalid value for {env_var}: {raw} ({e})",
                    ErrorCode.CONFIG_INVALID_VALUE,
                    key=env_var,
                    value=raw,
                    cause=e,
                )
            *sections, field_name = path
            target = data
            for section in sections:
                target = target.setdefault(section, {})
            target[field_name] = value
        return data

    def save_config(self, output_file: Union[str, Path], config: Optional[EngineConfig] = None) -> None:
        """Write a configuration (the loaded one, or defaults) as YAML."""
        config = config or self._config or EngineConfig()
        output_file = Path(output_file)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        with open(output_file, 'w', encoding='utf-8') as f:
            yaml.safe_dump(config.model_dump(mode='json'), f, default_flow_style=False, sort_keys=False)

    @staticmethod
    def generate_schema() -> Dict[str, Any]:
        """JSON schema of EngineConfig."""
        return EngineConfig.model_json_schema()
