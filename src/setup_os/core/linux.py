"""Linux system packages (apt, dnf, yum, pacman, zypper)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .commands import command_exists, run_cmd
from .config import Config
from .logging import print_header, print_step
from .packages import InstallReport, PackageStatus, enabled_packages, load_categories

logger = logging.getLogger(__name__)

CATEGORY_PREFIX = "PACKAGES"


@dataclass(frozen=True)
class PackageManager:
    """Command lines for one Linux package manager."""

    name: str
    update: Tuple[str, ...]
    install: Tuple[str, ...]
    query: Tuple[str, ...]
    # dnf/yum check-update exits 100 when updates are available
    update_ok_codes: Tuple[int, ...] = (0,)

    def is_installed(self, package: str) -> bool:
        result = run_cmd([*self.query, package])
        if self.name == "apt":
            return result.ok and any(line.startswith("ii") for line in result.stdout.splitlines())
        return result.ok


MANAGERS: Dict[str, PackageManager] = {
    "apt": PackageManager(
        name="apt",
        update=("sudo", "apt-get", "update", "-qq"),
        install=("sudo", "apt-get", "install", "-y"),
        query=("dpkg", "-l"),
    ),
    "dnf": PackageManager(
        name="dnf",
        update=("sudo", "dnf", "check-update", "-q"),
        install=("sudo", "dnf", "install", "-y"),
        query=("rpm", "-q"),
        update_ok_codes=(0, 100),
    ),
    "yum": PackageManager(
        name="yum",
        update=("sudo", "yum", "check-update", "-q"),
        install=("sudo", "yum", "install", "-y"),
        query=("rpm", "-q"),
        update_ok_codes=(0, 100),
    ),
    "pacman": PackageManager(
        name="pacman",
        update=("sudo", "pacman", "-Sy", "--noconfirm"),
        install=("sudo", "pacman", "-S", "--noconfirm", "--needed"),
        query=("pacman", "-Q"),
    ),
    "zypper": PackageManager(
        name="zypper",
        update=("sudo", "zypper", "refresh", "-q"),
        install=("sudo", "zypper", "install", "-y"),
        query=("rpm", "-q"),
    ),
}

# Probe order matters: dnf systems often ship a yum shim.
PROBES: Sequence[Tuple[str, str]] = (
    ("apt-get", "apt"),
    ("dnf", "dnf"),
    ("yum", "yum"),
    ("pacman", "pacman"),
    ("zypper", "zypper"),
)


def detect_package_manager() -> Optional[PackageManager]:
    """Return the first package manager found on PATH."""
    for executable, name in PROBES:
        if command_exists(executable):
            return MANAGERS[name]
    return None


class LinuxPackages:
    """Install and report packages listed under ``config/packages/linux/<manager>``."""

    def __init__(
        self,
        config: Config,
        dry_run: bool = False,
        manager: Optional[PackageManager] = None,
    ) -> None:
        self.config = config
        self.dry_run = dry_run
        self.manager = manager or detect_package_manager()

    @property
    def packages_dir(self) -> Optional[Path]:
        if self.manager is None:
            return None
        return self.config.packages_dir / "linux" / self.manager.name

    def _lists_available(self) -> bool:
        if self.manager is None:
            logger.warning("Unknown package manager - skipping package installation")
            return False
        if not self.packages_dir.is_dir():
            logger.warning("No package lists found for %s", self.manager.name)
            return False
        return True

    def status(self) -> List[PackageStatus]:
        """Installed state of every listed package, regardless of profile."""
        if not self._lists_available():
            return []
        return [
            PackageStatus(category.name, name, self.manager.is_installed(name))
            for category in load_categories(self.packages_dir)
            for name in category.packages
        ]

    def update(self) -> bool:
        print_step("Updating package lists")
        result = run_cmd(self.manager.update, dry_run=self.dry_run, capture=False)
        if result.returncode not in self.manager.update_ok_codes:
            logger.warning("Package list update failed (exit %s)", result.returncode)
            return False
        return True

    def install(self) -> InstallReport:
        """Refresh package lists and install enabled packages in one batch."""
        print_header("Package Installation")
        report = InstallReport()
        if not self._lists_available():
            return report

        logger.info("Detected package manager: %s", self.manager.name)
        self.update()

        print_step("Installing packages")
        packages = enabled_packages(self.packages_dir, CATEGORY_PREFIX)
        if not packages:
            logger.info("No packages to install")
            return report

        logger.info("Installing %d packages...", len(packages))
        if self.dry_run:
            run_cmd([*self.manager.install, *packages], dry_run=True)
            report.installed.extend(packages)
            return report

        result = run_cmd([*self.manager.install, *packages], capture=False)
        if result.ok:
            report.installed.extend(packages)
            logger.info("Package installation complete")
        else:
            logger.error("%s install failed (exit %s)", self.manager.name, result.returncode)
            report.failed.extend(packages)
        return report
