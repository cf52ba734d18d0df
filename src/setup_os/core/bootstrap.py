"""Full workstation setup: pick a profile, show the plan, run every step."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from .config import Config
from .defaults import DefaultsManager
from .detect import MINIMUM_MACOS_MAJOR, log_system_info, macos_major_version
from .dotfiles import DotfilesManager
from .errors import ProfileError, SetupError
from .homebrew import CASKS, FORMULAE, PREFIXES, Homebrew, ensure_xcode_tools
from .linux import LinuxPackages
from .logging import print_header, print_step
from .packages import any_category_enabled
from .profile import Profile, ProfileStore, flag_enabled

console = Console()
logger = logging.getLogger(__name__)


@dataclass
class SetupPlan:
    """Which steps a full setup will run on this OS with this profile."""

    os_name: str
    profile: str
    steps: List[Tuple[str, bool]] = field(default_factory=list)

    def enabled(self, step: str) -> bool:
        return dict(self.steps).get(step, False)


class BootstrapManager:
    """Run the complete setup for the current OS."""

    def __init__(
        self,
        config: Config,
        os_name: str,
        dry_run: bool = False,
        force: bool = False,
        interactive: bool = True,
    ) -> None:
        self.config = config
        self.os_name = os_name
        self.dry_run = dry_run
        self.force = force
        self.interactive = interactive
        self.profiles = ProfileStore(config.profiles_dir)

    def select_profile(self, name: Optional[str] = None) -> str:
        """Use ``name``, the only available profile, or ask the user.

        Raises:
            ProfileError: If no profile is usable on this OS.
        """
        if name:
            return name

        names = self.profiles.names(self.os_name)
        if not names:
            raise ProfileError(f"No profiles found in {self.profiles.profiles_dir}")
        if len(names) == 1:
            logger.info("Using only available profile: %s", names[0])
            return names[0]
        if not self.interactive:
            logger.info("Non-interactive session, using first profile: %s", names[0])
            return names[0]

        print_step("Select a profile")
        for index, option in enumerate(names, start=1):
            console.print(f"  [cyan]{index}[/]) {option}")
        choice = click.prompt(
            "Which profile would you like to use?",
            type=click.IntRange(1, len(names)),
        )
        return names[choice - 1]

    def plan(self, profile: Profile) -> SetupPlan:
        plan = SetupPlan(os_name=self.os_name, profile=profile.name)
        if self.os_name == "macos":
            macos_dir = self.config.packages_dir / "macos"
            homebrew = any(
                any_category_enabled(macos_dir / kind, PREFIXES[kind])
                for kind in (FORMULAE, CASKS)
            )
            plan.steps = [
                ("homebrew", homebrew),
                ("mas", homebrew and flag_enabled("PROFILE_MAS", default=True)),
                ("dotfiles", flag_enabled("PROFILE_DOTFILES", default=True)),
                ("defaults", flag_enabled("PROFILE_APPLY_DEFAULTS", default=True)),
            ]
        elif self.os_name == "linux":
            plan.steps = [
                ("packages", flag_enabled("PROFILE_PACKAGES", default=False)),
                ("dotfiles", flag_enabled("PROFILE_DOTFILES", default=True)),
            ]
        return plan

    def show_plan(self, plan: SetupPlan) -> None:
        print_step("Setup configuration")
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Step", style="bold")
        table.add_column("Action")
        table.add_row("Profile", plan.profile)
        for step, enabled in plan.steps:
            table.add_row(step.capitalize(), "run" if enabled else "[dim]skip (profile)[/]")
        console.print(table)

    def run(self, profile_name: Optional[str] = None) -> SetupPlan:
        """Run the full setup; returns the plan that was executed.

        Raises:
            SetupError: If the OS is unsupported, the profile is unknown, or
                a dotfiles step fails.
        """
        log_system_info()
        os_name = self.os_name
        if os_name in ("unknown", "windows"):
            raise SetupError(f"Unsupported operating system: {os_name}")

        name = self.select_profile(profile_name)
        profile = self.profiles.load(name)

        if self.dry_run:
            logger.warning("DRY-RUN MODE - No changes will be made")

        plan = self.plan(profile)
        self.show_plan(plan)

        if not self.dry_run and not self.force:
            if not click.confirm("Proceed with setup?", default=False):
                logger.info("Setup cancelled")
                plan.steps = [(step, False) for step, _ in plan.steps]
                return plan

        if os_name == "macos":
            self._run_macos(plan)
        else:
            self._run_linux(plan)

        print_header("Setup Complete")
        if self.dry_run:
            logger.info("This was a dry run. Run without --dry-run to apply changes.")
        else:
            logger.info("You may need to restart your terminal for all changes to take effect.")
        return plan

    def _run_macos(self, plan: SetupPlan) -> None:
        print_header("macOS Setup")
        major = macos_major_version()
        if major and major < MINIMUM_MACOS_MAJOR:
            logger.warning("This setup targets macOS %s or later", MINIMUM_MACOS_MAJOR)
            if not self.force and not click.confirm("Continue anyway?", default=False):
                raise SetupError("Unsupported macOS version")

        ensure_xcode_tools(dry_run=self.dry_run)

        homebrew = Homebrew(self.config, dry_run=self.dry_run)
        if plan.enabled("homebrew"):
            homebrew.setup()
        else:
            logger.info("Skipping Homebrew setup")
        if plan.enabled("mas"):
            homebrew.install_mas()
        else:
            logger.info("Skipping Mac App Store apps")

        self._run_dotfiles(plan)

        if plan.enabled("defaults"):
            DefaultsManager(self.config, dry_run=self.dry_run).apply()
        else:
            logger.info("Skipping system preferences")

    def _run_linux(self, plan: SetupPlan) -> None:
        print_header("Linux Setup")
        if plan.enabled("packages"):
            LinuxPackages(self.config, dry_run=self.dry_run).install()
        else:
            logger.info("Skipping packages (disabled in profile)")
        self._run_dotfiles(plan)

    def _run_dotfiles(self, plan: SetupPlan) -> None:
        if plan.enabled("dotfiles"):
            DotfilesManager(self.config, dry_run=self.dry_run, force=self.force).install()
        else:
            logger.info("Skipping dotfiles (disabled in profile)")
