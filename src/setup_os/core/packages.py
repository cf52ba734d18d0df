"""Package list parsing and profile category gating.

Package lists are plain text files, one package per line, grouped by
category (the file stem). A category is installed unless the active
profile sets ``<PREFIX>_<CATEGORY>`` to something other than ``"true"``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

from .errors import SetupError
from .logging import print_substep
from .profile import flag_enabled

logger = logging.getLogger(__name__)


@dataclass
class PackageCategory:
    name: str
    path: Path
    packages: List[str] = field(default_factory=list)

    def flag(self, prefix: str) -> str:
        return category_var(prefix, self.name)


@dataclass(frozen=True)
class PackageStatus:
    category: str
    name: str
    installed: bool


@dataclass
class InstallReport:
    """Best-effort install outcome; failures do not stop the run."""

    installed: List[str] = field(default_factory=list)
    already_installed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def category_var(prefix: str, category: str) -> str:
    """Profile variable gating a category: ``dev-tools`` -> ``PREFIX_DEV_TOOLS``."""
    return f"{prefix}_{category.upper().replace('-', '_')}"


def _strip_comment(line: str) -> str:
    return line.split("#", 1)[0].strip()


def parse_package_list(path: Path) -> List[str]:
    """Read package names, skipping blank lines and comments.

    Raises:
        SetupError: If the file does not exist.
    """
    path = Path(path)
    if not path.is_file():
        raise SetupError(f"Package file not found: {path}")

    packages = []
    for line in path.read_text().splitlines():
        name = _strip_comment(line)
        if name:
            packages.append(name)
    return packages


def parse_mas_list(path: Path) -> List[Tuple[str, str]]:
    """Read ``ID|Name`` lines of Mac App Store apps.

    Lines with a non-numeric ID are logged and skipped.
    """
    path = Path(path)
    if not path.is_file():
        raise SetupError(f"MAS file not found: {path}")

    apps = []
    for line in path.read_text().splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        app_id, _, name = stripped.partition("|")
        app_id = app_id.strip()
        name = name.strip()
        if not app_id.isdigit():
            logger.warning("Invalid MAS ID: %s", app_id)
            continue
        apps.append((app_id, name or app_id))
    return apps


def load_categories(directory: Path) -> List[PackageCategory]:
    """Load every ``*.txt`` package list in ``directory``, sorted by name."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    return [
        PackageCategory(name=path.stem, path=path, packages=parse_package_list(path))
        for path in sorted(directory.glob("*.txt"))
        if path.is_file()
    ]


def enabled_categories(
    directory: Path, prefix: str, announce: bool = True
) -> List[PackageCategory]:
    """Categories in ``directory`` that the active profile enables."""
    enabled = []
    for category in load_categories(directory):
        if flag_enabled(category.flag(prefix), default=True):
            if announce:
                print_substep(f"Including category: {category.name}")
            enabled.append(category)
        elif announce:
            print_substep(f"Skipping category: {category.name} (disabled in profile)")
    return enabled


def enabled_packages(directory: Path, prefix: str, announce: bool = True) -> List[str]:
    """Flatten enabled categories into one de-duplicated, ordered list."""
    seen = set()
    packages = []
    for category in enabled_categories(directory, prefix, announce):
        for name in category.packages:
            if name not in seen:
                seen.add(name)
                packages.append(name)
    return packages


def any_category_enabled(directory: Path, prefix: str) -> bool:
    """True if the profile explicitly enables at least one category."""
    return any(
        flag_enabled(category_var(prefix, path.stem), default=False)
        for path in Path(directory).glob("*.txt")
    )
