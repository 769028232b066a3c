"""
Configuration for the delivery note pipeline.

Settings come from ``settings.yaml`` next to this module, or from the
file passed with ``--config``. A few deployment values can also be set
through environment variables, which win over the file:

    CMR_NOTES_ENDPOINT     -> extraction.endpoint
    CMR_NOTES_CONCURRENCY  -> pipeline.concurrency
    CMR_NOTES_OUTPUT_DIR   -> paths.output_dir

Example:
    >>> from cmr_notes.config import get_config
    >>> get_config("pipeline.concurrency")
    2
"""

import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

import yaml

DEFAULT_SETTINGS = Path(__file__).parent / "settings.yaml"

# env var -> (dot key, converter)
ENV_OVERRIDES: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "CMR_NOTES_ENDPOINT": ("extraction.endpoint", str),
    "CMR_NOTES_CONCURRENCY": ("pipeline.concurrency", int),
    "CMR_NOTES_OUTPUT_DIR": ("paths.output_dir", str),
}


class ConfigurationManager:
    """
    Process-wide settings, loaded once.

    The first instantiation decides which file is read; later calls
    return the same instance until reset() is called.

    Attributes:
        config_path (Path): File the settings were read from.
    """

    _instance: Optional['ConfigurationManager'] = None
    _config: Dict[str, Any] = {}

    def __new__(cls, config_path: Optional[str] = None) -> 'ConfigurationManager':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[str] = None) -> None:
        if self._initialized:
            return

        self.config_path = Path(config_path) if config_path else DEFAULT_SETTINGS
        self._load_config()
        self._initialized = True

    def _load_config(self) -> None:
        """
        Read the YAML file, apply environment overrides and check values.

        Raises:
            ConfigurationError: If the file is missing, is not valid YAML
                or holds an unusable pipeline setting.
        """
        from cmr_notes.utils.exceptions import ConfigurationError

        if not self.config_path.is_file():
            raise ConfigurationError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid configuration file: {self.config_path}",
                {"reason": str(e)}
            )

        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigurationError(
                f"Configuration file must hold a mapping: {self.config_path}"
            )
        self._config = loaded or {}

        self._apply_env_overrides()
        self._resolve_paths()
        self._validate()

    def _apply_env_overrides(self) -> None:
        from cmr_notes.utils.exceptions import ConfigurationError

        for env_name, (key, convert) in ENV_OVERRIDES.items():
            raw = os.environ.get(env_name)
            if raw is None or raw == '':
                continue
            try:
                value = convert(raw)
            except ValueError:
                raise ConfigurationError(
                    f"Invalid value for {env_name}: {raw!r}",
                    {"key": key}
                )
            self.set(key, value)

    def _resolve_paths(self) -> None:
        """Make relative ``paths.*`` entries absolute against the cwd."""
        paths = self._config.get('paths') or {}
        base_dir = Path(os.getcwd())
        for key, value in paths.items():
            if value and not Path(value).is_absolute():
                paths[key] = str(base_dir / value)

    def _validate(self) -> None:
        from cmr_notes.utils.exceptions import ConfigurationError

        concurrency = self.get("pipeline.concurrency")
        if concurrency is not None and (not isinstance(concurrency, int) or concurrency < 1):
            raise ConfigurationError(
                f"pipeline.concurrency must be a positive integer, got {concurrency!r}"
            )

        scale = self.get("input.pdf.scale")
        if scale is not None and (not isinstance(scale, (int, float)) or scale <= 0):
            raise ConfigurationError(f"input.pdf.scale must be positive, got {scale!r}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up a value by dotted key.

        Example:
            >>> config.get("input.pdf.scale")
            2.5
            >>> config.get("no.such.key", "fallback")
            'fallback'
        """
        value: Any = self._config
        for part in key.split('.'):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return value

    def set(self, key: str, value: Any) -> None:
        """Set a value by dotted key, creating intermediate sections."""
        *parents, leaf = key.split('.')
        section = self._config
        for part in parents:
            section = section.setdefault(part, {})
        section[leaf] = value

    @classmethod
    def reset(cls) -> None:
        """Forget the loaded settings so the next access reads them again."""
        cls._instance = None


def get_config(key: str, default: Any = None) -> Any:
    """Shortcut for ``ConfigurationManager().get(key, default)``."""
    return ConfigurationManager().get(key, default)


__all__ = ['ConfigurationManager', 'get_config', 'ENV_OVERRIDES']
