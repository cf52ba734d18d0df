"""Command line interface for setup-os."""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, NoReturn, Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .core.bootstrap import BootstrapManager
from .core.config import Config
from .core.defaults import DefaultsManager
from .core.detect import detect_os, is_root, log_system_info
from .core.dotfiles import DotfilesManager
from .core.errors import SetupError
from .core.homebrew import CASKS, FORMULAE, Homebrew
from .core.linux import LinuxPackages
from .core.logging import print_step, setup_logging
from .core.overrides import configure_shell_title
from .core.packages import PackageStatus
from .core.profile import ProfileStore
from .core.symlink import LinkStatus, shorten_path, summarize

console = Console()
logger = logging.getLogger(__name__)

LIST_ACTIONS = ("ls", "list")
INSTALL_ACTIONS = ("", "install")


@dataclass
class Settings:
    """Options shared by every command."""

    config: Config
    os_name: str
    dry_run: bool = False
    force: bool = False
    profile: Optional[str] = None


pass_settings = click.make_pass_decorator(Settings)


@contextmanager
def abort_on_error() -> Iterator[None]:
    """Print a SetupError in red and exit with status 1."""
    try:
        yield
    except SetupError as e:
        console.print(f"[red]Error: {escape(str(e))}")
        raise click.Abort()


def _fail(*lines: str) -> NoReturn:
    console.print(f"[red]Error: {escape(lines[0])}")
    for line in lines[1:]:
        console.print(escape(line))
    raise click.Abort()


def _check_action(command: str, action: str, allowed: str = "ls, install (default)") -> str:
    """Normalize an action to ``ls`` or ``install``; unknown actions abort."""
    if action in LIST_ACTIONS:
        return "ls"
    if action in INSTALL_ACTIONS:
        return "install"
    _fail(f"Unknown subcommand: {command} {action}", f"Available: {allowed}")


def _require_os(settings: Settings, os_name: str, command: str, hint: str) -> None:
    if settings.os_name != os_name:
        _fail(f"{command} command is only available on {os_name}", hint)


def _require_non_root(settings: Settings) -> None:
    if is_root():
        _fail(
            "Do not run this command as root/sudo",
            "Homebrew requires non-root execution",
        )


def _announce_dry_run(settings: Settings) -> None:
    if settings.dry_run:
        logger.warning("DRY-RUN MODE - No changes will be made")


def _print_package_table(title: str, statuses: List[PackageStatus]) -> None:
    print_step(title)
    table = Table(show_edge=False, header_style="bold")
    table.add_column("Category", style="cyan")
    table.add_column("Package")
    table.add_column("Status")
    for status in statuses:
        label = "[green]installed[/]" if status.installed else "[red]missing[/]"
        table.add_row(status.category, status.name, label)
    if statuses:
        console.print(table)

    installed = sum(1 for s in statuses if s.installed)
    missing = len(statuses) - installed
    console.print(
        f"  [bold]Summary:[/] [green]{installed} installed[/], "
        f"[red]{missing} missing[/] (of {len(statuses)} total)"
    )
    console.print()


@click.group(invoke_without_command=True)
@click.option("--profile", "-p", help="Profile to load (e.g. personal, work)")
@click.option("--dry-run", is_flag=True, help="Show what would be done without making changes")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompts")
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
    envvar="SETUP_OS_ROOT",
    help="Repository root holding the config/ tree (defaults to the current directory)",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Settings file (defaults to <root>/setup-os.yaml when present)",
)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--log-file", help="Also write a debug log to this file")
@click.pass_context
def cli(
    ctx: click.Context,
    profile: Optional[str],
    dry_run: bool,
    force: bool,
    root: Optional[Path],
    config_file: Optional[Path],
    debug: bool,
    log_file: Optional[str],
) -> None:
    """Cross-platform workstation setup.

    Installs packages, links dotfiles and applies OS preferences from the
    declarative files under the repository's config/ directory.

    Run without a command for the full interactive setup.

    Main commands:

      dotfiles     Link dotfiles (ls: show link status)
      homebrew     Install Homebrew formulae and casks (macOS)
      packages     Install system packages (Linux)
      defaults     Apply system preferences (macOS)
      shell-title  Make the shell set the terminal title
      profiles     List available profiles

    Examples:

      # Full setup with a profile, without prompts
      setup-os --profile personal --force

      # Show dotfiles status
      setup-os dotfiles ls

      # Preview a Homebrew install
      setup-os --dry-run homebrew
    """
    setup_logging(debug=debug, log_file=log_file)

    with abort_on_error():
        config = Config(root)
        config.load_config(config_file)

        settings = Settings(
            config=config,
            os_name=detect_os(),
            dry_run=dry_run,
            force=force,
            profile=profile,
        )
        ctx.obj = settings

        if ctx.invoked_subcommand is None:
            _require_non_root(settings)
            manager = BootstrapManager(
                config,
                settings.os_name,
                dry_run=dry_run,
                force=force,
                interactive=sys.stdin.isatty(),
            )
            manager.run(profile)
        elif profile:
            ProfileStore(config.profiles_dir).load(profile)


@cli.command()
@click.argument("action", required=False, default="")
@pass_settings
def dotfiles(settings: Settings, action: str) -> None:
    """Link dotfiles from the manifest.

    ACTION is one of: install (default), ls, remove.

    Examples:

      # Link everything in config/dotfiles/manifest.txt
      setup-os dotfiles

      # Show which links are in place
      setup-os dotfiles ls

      # Remove links this tool created
      setup-os dotfiles remove
    """
    with abort_on_error():
        manager = DotfilesManager(settings.config, dry_run=settings.dry_run, force=settings.force)

        if action == "remove":
            _announce_dry_run(settings)
            removed = manager.remove()
            console.print(f"[green]Removed {removed} link(s)")
            return

        action = _check_action("dotfiles", action, "ls, install (default), remove")
        if action == "ls":
            _print_dotfiles_status(settings, manager)
            return

        _announce_dry_run(settings)
        manager.install()
        console.print("[green]Dotfiles installation complete")


def _print_dotfiles_status(settings: Settings, manager: DotfilesManager) -> None:
    results = manager.status()
    prefix = settings.config.get("dotfiles_dir").rstrip("/") + "/"

    print_step("Dotfiles")
    table = Table(show_edge=False, header_style="bold")
    table.add_column("SOURCE")
    table.add_column("DESTINATION")
    table.add_column("STATUS")

    styles = {
        LinkStatus.LINKED: "green",
        LinkStatus.WRONG_TARGET: "yellow",
        LinkStatus.CONFLICT: "red",
        LinkStatus.MISSING: "red",
    }
    for result in results:
        source = result.entry.source
        if source.startswith(prefix):
            source = source[len(prefix) :]
        table.add_row(
            escape(source),
            escape(shorten_path(result.destination)),
            f"[{styles[result.status]}]{result.status.value}[/]",
        )
    console.print(table)

    counts = summarize(results)
    console.print(f"  [bold]Summary:[/] [green]{counts[LinkStatus.LINKED]} linked[/]")
    if counts[LinkStatus.MISSING]:
        console.print(f"           [red]{counts[LinkStatus.MISSING]} missing[/]")
    if counts[LinkStatus.WRONG_TARGET]:
        console.print(f"           [yellow]{counts[LinkStatus.WRONG_TARGET]} wrong target[/]")
    if counts[LinkStatus.CONFLICT]:
        console.print(
            f"           [red]{counts[LinkStatus.CONFLICT]} conflict[/]"
            " (file exists but not a symlink)"
        )
    if counts[LinkStatus.LINKED] != len(results):
        logger.info("Run 'setup-os dotfiles' to fix issues")


def _homebrew_command(
    settings: Settings, name: str, action: str, kinds: Tuple[str, ...]
) -> None:
    action = _check_action(name, action)
    _require_os(settings, "macos", name, "On Linux, use: packages")
    homebrew = Homebrew(settings.config, dry_run=settings.dry_run)

    if action == "ls":
        for kind in kinds:
            title = "Homebrew Formulae" if kind == FORMULAE else "Homebrew Casks"
            _print_package_table(title, homebrew.status(kind))
        return

    _require_non_root(settings)
    _announce_dry_run(settings)
    reports = homebrew.setup(kinds)
    failed = [pkg for report in reports.values() for pkg in report.failed]
    if failed:
        logger.warning("Failed to install: %s", ", ".join(failed))
    console.print(f"[green]{name.capitalize()} setup complete")


@cli.command()
@click.argument("action", required=False, default="")
@pass_settings
def homebrew(settings: Settings, action: str) -> None:
    """Install Homebrew formulae and casks (macOS).

    ACTION is one of: install (default), ls.
    """
    with abort_on_error():
        _homebrew_command(settings, "homebrew", action, (FORMULAE, CASKS))


@cli.command()
@click.argument("action", required=False, default="")
@pass_settings
def formulae(settings: Settings, action: str) -> None:
    """Install Homebrew formulae only (macOS)."""
    with abort_on_error():
        _homebrew_command(settings, "formulae", action, (FORMULAE,))


@cli.command()
@click.argument("action", required=False, default="")
@pass_settings
def casks(settings: Settings, action: str) -> None:
    """Install Homebrew casks only (macOS)."""
    with abort_on_error():
        _homebrew_command(settings, "casks", action, (CASKS,))


@cli.command()
@click.argument("action", required=False, default="")
@pass_settings
def mas(settings: Settings, action: str) -> None:
    """Install Mac App Store apps (macOS)."""
    with abort_on_error():
        action = _check_action("mas", action)
        _require_os(settings, "macos", "mas", "On Linux, use: packages")
        homebrew = Homebrew(settings.config, dry_run=settings.dry_run)

        if action == "ls":
            statuses = [
                PackageStatus("mas", f"{app_id}  {name}", installed)
                for app_id, name, installed in homebrew.mas_status()
            ]
            _print_package_table("Mac App Store Apps", statuses)
            return

        _require_non_root(settings)
        _announce_dry_run(settings)
        homebrew.ensure_installed()
        homebrew.install_mas()
        console.print("[green]Mac App Store apps installation complete")


@cli.command()
@click.argument("action", required=False, default="")
@pass_settings
def packages(settings: Settings, action: str) -> None:
    """Install system packages with apt/dnf/yum/pacman/zypper (Linux).

    ACTION is one of: install (default), ls.
    """
    with abort_on_error():
        action = _check_action("packages", action)
        _require_os(
            settings, "linux", "packages", "On macOS, use: homebrew, formulae, casks, or mas"
        )
        manager = LinuxPackages(settings.config, dry_run=settings.dry_run)

        if action == "ls":
            _print_package_table("Linux packages status", manager.status())
            return

        _announce_dry_run(settings)
        report = manager.install()
        if report.failed:
            logger.warning("Some packages failed to install")
        console.print("[green]Package installation complete")


@cli.command()
@click.argument("action", required=False, default="")
@pass_settings
def defaults(settings: Settings, action: str) -> None:
    """Apply system preferences (macOS).

    ACTION is one of: apply (default).
    """
    with abort_on_error():
        if action not in ("", "apply"):
            _fail(f"Unknown subcommand: defaults {action}", "Available: apply (default)")
        _require_os(settings, "macos", "defaults", "System preferences are macOS only")
        _announce_dry_run(settings)
        DefaultsManager(settings.config, dry_run=settings.dry_run).apply()
        console.print("[green]System preferences applied")


@cli.command("shell-title")
@pass_settings
def shell_title(settings: Settings) -> None:
    """Make bash and zsh set the terminal title to the hostname (for tmux)."""
    configure_shell_title(dry_run=settings.dry_run)


@cli.command()
@pass_settings
def profiles(settings: Settings) -> None:
    """List profiles available on this OS."""
    with abort_on_error():
        names = ProfileStore(settings.config.profiles_dir).names(settings.os_name)
    if not names:
        console.print("[yellow]No profiles found.")
        return
    console.print("[bold]Available profiles:")
    for name in names:
        console.print(f"  - {escape(name)}")


@cli.command()
def info() -> None:
    """Show detected operating system and architecture."""
    log_system_info()


cli.add_command(homebrew, "brew")
cli.add_command(formulae, "formula")
cli.add_command(casks, "cask")


def main() -> None:
    """Entry point for the setup-os CLI.

    Usage errors exit with status 1, like every other validation failure.
    """
    try:
        rv = cli.main(standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(1)
    except click.Abort:
        sys.exit(1)
    sys.exit(rv if isinstance(rv, int) else 0)


if __name__ == "__main__":
    main()
