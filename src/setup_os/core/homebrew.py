"""Homebrew formulae, casks and Mac App Store apps.

Installed-package listings are fetched once per :class:`Homebrew` instance.
Installs run one package at a time and a failure is logged and skipped,
so one broken cask never blocks the rest of the list.
"""

from __future__ import annotations

import logging
import re
import shutil
import time
from pathlib import Path
from typing import Dict, List, Set, Tuple

from .commands import command_exists, query_lines, run_cmd
from .config import Config
from .detect import is_apple_silicon
from .errors import SetupError
from .logging import print_dry, print_header, print_step, print_substep
from .packages import (
    InstallReport,
    PackageStatus,
    enabled_packages,
    load_categories,
    parse_mas_list,
)

logger = logging.getLogger(__name__)

HOMEBREW_INSTALL_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"

FORMULAE = "formulae"
CASKS = "casks"

# Profile variable prefix per package kind
PREFIXES: Dict[str, str] = {FORMULAE: "FORMULAE", CASKS: "CASKS"}


def default_brew_path() -> str:
    if is_apple_silicon():
        return "/opt/homebrew/bin/brew"
    return "/usr/local/bin/brew"


def ensure_xcode_tools(
    dry_run: bool = False, poll_interval: float = 5.0, timeout: float = 1800.0
) -> bool:
    """Install the Xcode Command Line Tools, which Homebrew needs.

    The installer is a GUI dialog, so this waits until ``xcode-select -p``
    succeeds.

    Returns:
        bool: True if the tools were installed by this call.

    Raises:
        SetupError: If the tools are still missing after ``timeout`` seconds.
    """
    print_step("Checking Xcode Command Line Tools")
    if run_cmd(["xcode-select", "-p"]).ok:
        logger.info("Xcode Command Line Tools already installed")
        return False

    logger.info("Installing Xcode Command Line Tools...")
    if dry_run:
        print_dry("xcode-select --install")
        return False

    run_cmd(["xcode-select", "--install"])
    logger.info("Please complete the Xcode Command Line Tools installation in the popup")
    waited = 0.0
    while not run_cmd(["xcode-select", "-p"]).ok:
        if waited >= timeout:
            raise SetupError("Timed out waiting for Xcode Command Line Tools")
        time.sleep(poll_interval)
        waited += poll_interval
    logger.info("Xcode Command Line Tools installed")
    return True


class Homebrew:
    """Install and report Homebrew packages from ``config/packages/macos``."""

    def __init__(self, config: Config, dry_run: bool = False) -> None:
        self.config = config
        self.dry_run = dry_run
        self._installed: Dict[str, Set[str]] = {}

    @property
    def brew(self) -> str:
        return shutil.which("brew") or default_brew_path()

    @property
    def macos_dir(self) -> Path:
        return self.config.packages_dir / "macos"

    @property
    def mas_file(self) -> Path:
        return self.macos_dir / "mas" / "apps.txt"

    def is_available(self) -> bool:
        return command_exists("brew") or Path(default_brew_path()).exists()

    def installed(self, kind: str) -> Set[str]:
        """Names from ``brew list --formula`` or ``brew list --cask``."""
        if kind not in self._installed:
            flag = "--formula" if kind == FORMULAE else "--cask"
            lines = query_lines([self.brew, "list", flag]) if self.is_available() else []
            self._installed[kind] = set(lines)
        return self._installed[kind]

    def is_installed(self, kind: str, name: str) -> bool:
        """Check a package; formulae match with or without an ``@version`` suffix."""
        installed = self.installed(kind)
        if kind == CASKS:
            return name in installed
        pattern = re.compile(rf"^{re.escape(name)}(@.*)?$")
        return any(pattern.match(item) for item in installed)

    def status(self, kind: str) -> List[PackageStatus]:
        """Installed state of every listed package of ``kind``."""
        return [
            PackageStatus(category.name, name, self.is_installed(kind, name))
            for category in load_categories(self.macos_dir / kind)
            for name in category.packages
        ]

    def ensure_installed(self) -> None:
        """Install Homebrew itself if it is missing."""
        print_step("Checking Homebrew installation")
        if self.is_available():
            logger.info("Homebrew already installed")
            return

        logger.info("Installing Homebrew...")
        if self.dry_run:
            print_dry(f"curl -fsSL {HOMEBREW_INSTALL_URL} | bash")
            return

        script = run_cmd(["curl", "-fsSL", HOMEBREW_INSTALL_URL], check=True)
        run_cmd(
            ["/bin/bash", "-c", script.stdout],
            check=True,
            capture=False,
            env={"NONINTERACTIVE": "1"},
        )
        logger.info("Homebrew installed")

    def update(self) -> None:
        print_step("Updating Homebrew")
        result = run_cmd([self.brew, "update"], dry_run=self.dry_run, capture=False)
        if not result.ok:
            logger.warning("brew update failed (exit %s)", result.returncode)

    def cleanup(self) -> None:
        print_step("Cleaning up Homebrew")
        run_cmd([self.brew, "cleanup"], dry_run=self.dry_run, capture=False)

    def install(self, kind: str) -> InstallReport:
        """Install every enabled package of ``kind`` that is not installed yet."""
        label = "formulae" if kind == FORMULAE else "casks"
        print_step(f"Installing Homebrew {label}")
        report = InstallReport()

        packages = enabled_packages(self.macos_dir / kind, PREFIXES[kind])
        if not packages:
            logger.warning("No %s to install", label)
            return report

        logger.info("Installing %d %s...", len(packages), label)
        extra = [] if kind == FORMULAE else ["--cask"]
        for name in packages:
            if self.dry_run:
                print_dry(" ".join(["brew", "install", *extra, name]))
                report.installed.append(name)
                continue
            if self.is_installed(kind, name):
                print_substep(f"Already installed: {name}")
                report.already_installed.append(name)
                continue

            print_substep(f"Installing: {name}")
            result = run_cmd([self.brew, "install", *extra, name], capture=False)
            if result.ok:
                report.installed.append(name)
            else:
                logger.warning("Failed to install: %s", name)
                report.failed.append(name)
        return report

    def setup(self, kinds: Tuple[str, ...] = (FORMULAE, CASKS)) -> Dict[str, InstallReport]:
        """Install Homebrew if needed, update it, install packages and clean up."""
        print_header("Homebrew Setup")
        self.ensure_installed()
        self.update()
        reports = {kind: self.install(kind) for kind in kinds}
        self.cleanup()
        return reports

    def mas_apps(self) -> List[Tuple[str, str]]:
        if not self.mas_file.is_file():
            logger.warning("MAS apps file not found: %s", self.mas_file)
            return []
        return parse_mas_list(self.mas_file)

    def installed_mas(self) -> Set[str]:
        if "mas" not in self._installed:
            lines = query_lines(["mas", "list"]) if command_exists("mas") else []
            self._installed["mas"] = {line.split()[0] for line in lines}
        return self._installed["mas"]

    def mas_status(self) -> List[Tuple[str, str, bool]]:
        installed = self.installed_mas()
        return [(app_id, name, app_id in installed) for app_id, name in self.mas_apps()]

    def install_mas(self) -> InstallReport:
        """Install Mac App Store apps with the ``mas`` CLI."""
        print_step("Installing Mac App Store apps")
        report = InstallReport()

        if not command_exists("mas"):
            logger.info("Installing mas CLI...")
            run_cmd([self.brew, "install", "mas"], dry_run=self.dry_run, capture=False)

        for app_id, name in self.mas_apps():
            if self.dry_run:
                print_dry(f"mas install {app_id}  # {name}")
                report.installed.append(name)
                continue

            result = run_cmd(["mas", "install", app_id], env={"MAS_NO_AUTO_INDEX": "1"})
            if not result.ok:
                logger.warning("Failed to install: %s", name)
                report.failed.append(name)
            elif "already installed" in result.output:
                print_substep(f"Already installed: {name}")
                report.already_installed.append(name)
            else:
                print_substep(f"Installed: {name}")
                report.installed.append(name)
        return report
