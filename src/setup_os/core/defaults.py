"""macOS preference defaults from declarative YAML groups.

Each ``<group>.yaml`` file under the defaults directory looks like::

    profile_flag: PROFILE_APPLY_SECURITY   # optional
    settings:
      - {domain: com.apple.dock, key: autohide, type: bool, value: true}

Every setting becomes one ``defaults write`` call. A failing write is
logged and the remaining settings still run.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .commands import run_cmd
from .config import Config
from .errors import ConfigError
from .logging import print_header, print_step, print_substep

logger = logging.getLogger(__name__)

VALUE_TYPES = ("bool", "int", "float", "string")


@dataclass(frozen=True)
class DefaultsSetting:
    domain: str
    key: str
    type: str
    value: Any

    def argv(self) -> List[str]:
        if self.type == "bool":
            enabled = self.value
            if isinstance(enabled, str):
                enabled = enabled.lower() in ("true", "yes", "1")
            value = "true" if enabled else "false"
        else:
            value = str(self.value)
        return ["defaults", "write", self.domain, self.key, f"-{self.type}", value]


@dataclass
class DefaultsGroup:
    name: str
    settings: List[DefaultsSetting] = field(default_factory=list)
    profile_flag: Optional[str] = None

    def is_enabled(self) -> bool:
        if not self.profile_flag:
            return True
        return os.environ.get(self.profile_flag) != "false"


def _parse_setting(group: str, index: int, raw: Dict[str, Any]) -> DefaultsSetting:
    if not isinstance(raw, dict):
        raise ConfigError(f"{group}: setting #{index} must be a mapping")
    missing = [k for k in ("domain", "key", "value") if k not in raw]
    if missing:
        raise ConfigError(f"{group}: setting #{index} is missing {', '.join(missing)}")
    value_type = raw.get("type", "string")
    if value_type not in VALUE_TYPES:
        raise ConfigError(f"{group}: setting #{index} has unknown type {value_type!r}")
    return DefaultsSetting(
        domain=str(raw["domain"]), key=str(raw["key"]), type=value_type, value=raw["value"]
    )


def load_group(path: Path) -> DefaultsGroup:
    """Load one defaults group file.

    Raises:
        ConfigError: If the YAML is malformed or a setting is incomplete.
    """
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Error loading defaults group {path}: {e}") from e
    if isinstance(data, list):
        data = {"settings": data}
    if not isinstance(data, dict):
        raise ConfigError(f"{path.name}: expected a mapping or a list of settings")

    settings = [
        _parse_setting(path.stem, i, raw) for i, raw in enumerate(data.get("settings") or [], 1)
    ]
    return DefaultsGroup(name=path.stem, settings=settings, profile_flag=data.get("profile_flag"))


def load_groups(directory: Path) -> List[DefaultsGroup]:
    directory = Path(directory)
    if not directory.is_dir():
        return []
    return [load_group(path) for path in sorted(directory.glob("*.yaml"))]


class DefaultsManager:
    """Apply preference groups and restart the apps that cache them."""

    def __init__(self, config: Config, dry_run: bool = False) -> None:
        self.config = config
        self.dry_run = dry_run

    def apply_group(self, group: DefaultsGroup) -> int:
        """Apply one group and return the number of failed writes."""
        print_step(f"Applying: {group.name}")
        failures = 0
        for setting in group.settings:
            result = run_cmd(setting.argv(), dry_run=self.dry_run)
            if not result.ok:
                failures += 1
                logger.warning("Failed to set %s %s", setting.domain, setting.key)
        if failures:
            logger.warning("Some preferences in %s may not have been applied", group.name)
        return failures

    def apply(self) -> int:
        """Apply every enabled group; returns the total number of failed writes."""
        print_header("System Preferences")

        directory = self.config.defaults_dir
        groups = load_groups(directory)
        if not groups:
            logger.warning("No defaults groups found in %s", directory)
            return 0

        # System Settings overwrites changes made while it is open
        for app in ("System Settings", "System Preferences"):
            run_cmd(["osascript", "-e", f'tell application "{app}" to quit'], dry_run=self.dry_run)

        failures = 0
        for group in groups:
            if not group.is_enabled():
                print_substep(f"Skipping: {group.name} (disabled for this profile)")
                continue
            failures += self.apply_group(group)

        logger.info("System preferences applied")
        self.restart_apps()
        return failures

    def restart_apps(self) -> None:
        print_step("Restarting affected applications")
        for app in self.config.restart_apps:
            run_cmd(["killall", app], dry_run=self.dry_run)
        logger.info("Some changes may require a logout/login to take effect")
