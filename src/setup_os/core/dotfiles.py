"""Dotfiles installation: manifest symlinks plus local override files."""

from __future__ import annotations

import logging
from typing import List, Optional

from rich.console import Console

from .config import Config
from .logging import print_header, print_step
from .manifest import ManifestEntry, load_manifest
from .overrides import create_local_overrides
from .symlink import LinkResult, StatusResult, SymlinkManager

logger = logging.getLogger(__name__)


class DotfilesManager:
    """Link, check and unlink the dotfiles listed in the manifest."""

    def __init__(
        self,
        config: Config,
        dry_run: bool = False,
        force: bool = False,
        console: Optional[Console] = None,
    ) -> None:
        self.config = config
        self.dry_run = dry_run
        self.force = force
        self.symlinks = SymlinkManager(config, dry_run=dry_run, console=console)

    def entries(self) -> List[ManifestEntry]:
        return load_manifest(self.config.manifest_path)

    def status(self) -> List[StatusResult]:
        return self.symlinks.check(self.entries())

    def install(self, overrides: bool = True) -> List[LinkResult]:
        """Link every active manifest entry, then report and create overrides.

        Raises:
            ManifestError: If the manifest is missing or malformed.
            SymlinkError: If an entry cannot be linked.
        """
        print_header("Dotfiles Setup")
        entries = self.entries()

        print_step("Processing dotfiles manifest")
        results = self.symlinks.link_all(entries)

        print_step("Dotfiles status")
        self.symlinks.print_check(self.symlinks.check(entries))

        if overrides:
            create_local_overrides(dry_run=self.dry_run, force=self.force)

        logger.info("Dotfiles setup complete")
        return results

    def remove(self) -> int:
        """Unlink every managed destination in the manifest."""
        print_step("Removing dotfiles links")
        removed = 0
        for entry in self.entries():
            if entry.is_active() and self.symlinks.remove(entry):
                removed += 1
        return removed
