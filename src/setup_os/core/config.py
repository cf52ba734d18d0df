"""Configuration management for setup-os."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "setup-os.yaml"

DEFAULT_CONFIG: Dict[str, Any] = {
    "manifest": "config/dotfiles/manifest.txt",
    "dotfiles_dir": "config/dotfiles",
    "profiles_dir": "config/profiles",
    "packages_dir": "config/packages",
    "defaults_dir": "config/defaults/macos",
    "backup_root": "~/.dotfiles_backup",
    "managed_markers": ["setup-os", "dotfiles"],
    "restart_apps": ["Dock", "Finder", "SystemUIServer"],
}

PATH_KEYS = ("manifest", "dotfiles_dir", "profiles_dir", "packages_dir", "defaults_dir")
LIST_KEYS = ("managed_markers", "restart_apps")


class Config:
    """Settings for one repository root.

    Paths in the settings are relative to ``root`` unless absolute. The
    backup root is the only path that may live outside the repository and
    has ``~`` expanded.

    Attributes:
        root (Path): Repository root holding the ``config/`` data tree.
        managed_markers (List[str]): Substrings that identify a symlink
            target as one this tool created.
    """

    def __init__(self, root: Optional[Path] = None) -> None:
        """Initialize configuration with defaults for ``root``."""
        self.root = Path(root or Path.cwd()).absolute()
        self.config: Dict[str, Any] = {}
        self.managed_markers: List[str] = []
        self.restart_apps: List[str] = []
        self._merge_config(DEFAULT_CONFIG)

    def load_config(self, config_file: Optional[Path] = None) -> None:
        """Merge a YAML settings file over the current configuration.

        With no argument, ``<root>/setup-os.yaml`` is used when it exists.

        Raises:
            ConfigError: If the file is missing, unparsable or has bad values.
        """
        if config_file is None:
            config_file = self.root / CONFIG_FILE_NAME
            if not config_file.is_file():
                return
        config_file = Path(config_file).expanduser()
        if not config_file.is_file():
            raise ConfigError(f"Config file not found: {config_file}")

        try:
            with open(config_file, "r", encoding="utf-8") as f:
                user_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Error loading config file {config_file}: {e}") from e

        logger.debug("Loaded settings from %s", config_file)
        if user_config:
            self._merge_config(user_config)

    def load_from_dict(self, config_data: Dict[str, Any]) -> None:
        """Merge settings from a dictionary.

        Example:
            ```python
            config = Config(Path("~/setup-os").expanduser())
            config.load_from_dict({"backup_root": "/tmp/backups"})
            ```
        """
        self._merge_config(config_data)

    def _merge_config(self, config: Dict[str, Any]) -> None:
        """Merge configuration with current configuration."""
        if not isinstance(config, dict):
            raise ConfigError("Configuration must be a dictionary")

        unknown = sorted(set(config) - set(DEFAULT_CONFIG))
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

        for key in PATH_KEYS + ("backup_root",):
            if key in config and not isinstance(config[key], str):
                raise ConfigError(f"{key} must be a string")

        for key in LIST_KEYS:
            if key in config:
                value = config[key]
                if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                    raise ConfigError(f"{key} must be a list of strings")

        self.config.update(config)
        self.managed_markers = list(self.config["managed_markers"])
        self.restart_apps = list(self.config["restart_apps"])

    def validate(self) -> List[str]:
        """Validate configuration against the filesystem."""
        errors = []

        if not self.root.is_dir():
            errors.append(f"repository root {self.root} is not a directory")

        if not self.managed_markers:
            errors.append("managed_markers must not be empty")
        elif any(not marker for marker in self.managed_markers):
            errors.append("managed_markers must not contain empty strings")

        if not self.profiles_dir.is_dir():
            errors.append(f"profiles directory {self.profiles_dir} does not exist")

        return errors

    def _resolve(self, key: str) -> Path:
        path = Path(self.config[key]).expanduser()
        if not path.is_absolute():
            path = self.root / path
        return path

    @property
    def manifest_path(self) -> Path:
        return self._resolve("manifest")

    @property
    def dotfiles_dir(self) -> Path:
        return self._resolve("dotfiles_dir")

    @property
    def profiles_dir(self) -> Path:
        return self._resolve("profiles_dir")

    @property
    def packages_dir(self) -> Path:
        return self._resolve("packages_dir")

    @property
    def defaults_dir(self) -> Path:
        return self._resolve("defaults_dir")

    @property
    def backup_root(self) -> Path:
        return Path(self.config["backup_root"]).expanduser()

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value.

        Args:
            key: The configuration key to get.
            default: The default value to return if the key is not found.

        Returns:
            The configuration value, or the default if not found.
        """
        return self.config.get(key, default)
