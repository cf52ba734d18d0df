"""Manifest-driven symlink reconciliation.

This module makes every active manifest entry's destination a symlink to its
source. Anything already in the way is moved into a timestamped backup
directory first, except symlinks this tool created earlier (managed links),
which are simply replaced.

Running :meth:`SymlinkManager.link_all` twice in a row leaves the second run
with nothing to do.
"""

from __future__ import annotations

import enum
import logging
import os
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from rich.console import Console
from rich.markup import escape

from .config import Config
from .errors import SymlinkError
from .logging import print_dry, print_substep
from .manifest import ManifestEntry

logger = logging.getLogger(__name__)

BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


class LinkAction(str, enum.Enum):
    """What :meth:`SymlinkManager.link` did for an entry."""

    UNCHANGED = "unchanged"
    CREATED = "created"
    REPLACED = "replaced"
    BACKED_UP = "backed up"


class LinkStatus(str, enum.Enum):
    """Current state of an entry's destination."""

    LINKED = "linked"
    WRONG_TARGET = "wrong target"
    CONFLICT = "conflict"
    MISSING = "missing"


@dataclass(frozen=True)
class LinkResult:
    entry: ManifestEntry
    source: Path
    destination: Path
    action: LinkAction
    backup_path: Optional[Path] = None


@dataclass(frozen=True)
class StatusResult:
    entry: ManifestEntry
    source: Path
    destination: Path
    status: LinkStatus


def shorten_path(path: Path) -> str:
    """Replace the home directory prefix with ``~`` for display."""
    home = str(Path.home())
    text = str(path)
    if text == home:
        return "~"
    if text.startswith(home + os.sep):
        return "~" + text[len(home) :]
    return text


def _read_link(path: Path) -> str:
    return os.readlink(path)


def _unlink(path: Path) -> None:
    try:
        path.unlink()
    except OSError as e:
        raise SymlinkError(f"Failed to remove {path}: {e}") from e


class SymlinkManager:
    """Create, check and remove manifest symlinks.

    Attributes:
        config (Config): Settings providing the repository root, backup root
            and managed link markers.
        dry_run (bool): Report actions without touching the filesystem.
        backup_dir (Path): Where replaced files go for this run. Created on
            first use.
    """

    def __init__(
        self,
        config: Config,
        dry_run: bool = False,
        console: Optional[Console] = None,
        timestamp: Optional[datetime] = None,
    ) -> None:
        self.config = config
        self.dry_run = dry_run
        self.console = console or Console()
        stamp = (timestamp or datetime.now()).strftime(BACKUP_TIMESTAMP_FORMAT)
        self.backup_dir = config.backup_root / stamp
        self._backup_dir_announced = False

    def is_managed_link(self, path: Path) -> bool:
        """Check if ``path`` is a symlink created by this tool."""
        if not path.is_symlink():
            return False
        target = _read_link(path)
        return any(marker in target for marker in self.config.managed_markers)

    def _backup_target(self, path: Path) -> Path:
        try:
            relative = path.relative_to(Path.home())
        except ValueError:
            relative = Path(path.name)
        base = target = self.backup_dir / relative
        counter = 1
        while target.exists() or target.is_symlink():
            target = base.with_name(f"{base.name}.{counter}")
            counter += 1
        return target

    def backup_file(self, path: Path) -> Optional[Path]:
        """Move ``path`` aside before it is replaced.

        Managed links are deleted rather than backed up.

        Returns:
            Optional[Path]: The backup location, or None if ``path`` was a
            managed link that was just removed.
        """
        if self.is_managed_link(path):
            logger.debug("Removing old managed link %s", path)
            if not self.dry_run:
                _unlink(path)
            return None

        target = self._backup_target(path)
        if not self.dry_run:
            try:
                if not self._backup_dir_announced:
                    self.backup_dir.mkdir(parents=True, exist_ok=True)
                    logger.info("Backups saved to: %s", shorten_path(self.backup_dir))
                    self._backup_dir_announced = True
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(path), str(target))
            except OSError as e:
                raise SymlinkError(f"Failed to back up {path}: {e}") from e
        logger.debug("Backed up %s to %s", path, target)
        return target

    def link(self, entry: ManifestEntry) -> LinkResult:
        """Make the entry's destination a symlink to its source.

        Raises:
            SymlinkError: If the source is missing or the link cannot be made.
        """
        source = entry.source_path(self.config.root)
        destination = entry.destination_path()
        short_dest = escape(shorten_path(destination))

        if not source.exists() and not source.is_symlink():
            raise SymlinkError(f"Source does not exist: {source}")

        if not destination.parent.is_dir():
            print_substep(f"Creating directory: {shorten_path(destination.parent)}")
            if not self.dry_run:
                try:
                    destination.parent.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    raise SymlinkError(
                        f"Failed to create directory {destination.parent}: {e}"
                    ) from e

        action = LinkAction.CREATED
        backup_path = None
        if destination.is_symlink() or destination.exists():
            if destination.is_symlink() and _read_link(destination) == str(source):
                self.console.print(f"  [green]✓[/] {short_dest}")
                return LinkResult(entry, source, destination, LinkAction.UNCHANGED)

            if destination.is_symlink() and not entry.backup:
                if not self.dry_run:
                    _unlink(destination)
                action = LinkAction.REPLACED
            else:
                backup_path = self.backup_file(destination)
                action = LinkAction.REPLACED if backup_path is None else LinkAction.BACKED_UP

        if self.dry_run:
            print_dry(f"ln -s {source} {destination}")
        else:
            try:
                os.symlink(source, destination)
            except OSError as e:
                raise SymlinkError(f"Failed to link {destination}: {e}") from e

        if action is LinkAction.BACKED_UP:
            self.console.print(f"  [cyan]↻[/] {short_dest} [dim](backed up)[/]")
        else:
            self.console.print(f"  [cyan]+[/] {short_dest}")
        return LinkResult(entry, source, destination, action, backup_path)

    def link_all(self, entries: Iterable[ManifestEntry]) -> List[LinkResult]:
        """Link every active entry, in manifest order.

        The first failure aborts the run.
        """
        results = []
        for entry in entries:
            if not entry.is_active():
                logger.debug("Skipping %s (condition %s)", entry.destination, entry.condition)
                continue
            results.append(self.link(entry))
        return results

    def status(self, entry: ManifestEntry) -> StatusResult:
        source = entry.source_path(self.config.root)
        destination = entry.destination_path()

        if destination.is_symlink():
            if _read_link(destination) == str(source):
                status = LinkStatus.LINKED
            else:
                status = LinkStatus.WRONG_TARGET
        elif destination.exists():
            status = LinkStatus.CONFLICT
        else:
            status = LinkStatus.MISSING
        return StatusResult(entry, source, destination, status)

    def check(self, entries: Iterable[ManifestEntry]) -> List[StatusResult]:
        """Report the status of every active entry."""
        return [self.status(entry) for entry in entries if entry.is_active()]

    def print_check(self, results: List[StatusResult]) -> bool:
        """Print a compact status list; True when everything is linked."""
        for result in results:
            short_dest = escape(shorten_path(result.destination))
            if result.status is LinkStatus.LINKED:
                self.console.print(f"  [green]✓[/] {short_dest}")
            elif result.status is LinkStatus.WRONG_TARGET:
                self.console.print(f"  [yellow]~[/] {short_dest} [dim](wrong target)[/]")
            elif result.status is LinkStatus.CONFLICT:
                self.console.print(f"  [red]✗[/] {short_dest} [dim](not a symlink)[/]")
            else:
                self.console.print(f"  [red]✗[/] {short_dest} [dim](missing)[/]")
        return all(r.status is LinkStatus.LINKED for r in results)

    def remove(self, entry: ManifestEntry) -> bool:
        """Remove the entry's destination if it is a managed link."""
        destination = entry.destination_path()
        short_dest = shorten_path(destination)

        if not destination.is_symlink():
            logger.warning("Not a symlink: %s", short_dest)
            return False
        if not self.is_managed_link(destination):
            logger.warning("Symlink doesn't point to our dotfiles: %s", short_dest)
            return False

        self.console.print(f"  [red]-[/] {escape(short_dest)}")
        if not self.dry_run:
            _unlink(destination)
        return True


def summarize(results: Iterable[StatusResult]) -> Dict[LinkStatus, int]:
    counts = {status: 0 for status in LinkStatus}
    for result in results:
        counts[result.status] += 1
    return counts
