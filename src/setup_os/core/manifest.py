"""Dotfiles manifest parsing.

Each non-comment line of the manifest is ``source|destination|backup|condition``.
Only ``source`` and ``destination`` are required; ``backup`` defaults to ``yes``
and ``condition`` names a profile variable that must be ``"true"`` for the
entry to apply.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional

from .errors import ManifestError

FIELD_SEPARATOR = "|"


@dataclass(frozen=True)
class ManifestEntry:
    """One desired symlink."""

    source: str
    destination: str
    backup: bool = True
    condition: Optional[str] = None
    lineno: int = 0

    def is_active(self, env: Optional[Mapping[str, str]] = None) -> bool:
        """Check the entry's condition.

        An unset condition variable counts as enabled.
        """
        if not self.condition:
            return True
        env = os.environ if env is None else env
        return env.get(self.condition, "true") == "true"

    def source_path(self, root: Path) -> Path:
        """Absolute source path; relative sources live under ``root``."""
        path = Path(self.source).expanduser()
        if not path.is_absolute():
            path = Path(root) / path
        return Path(os.path.abspath(path))

    def destination_path(self) -> Path:
        return Path(os.path.abspath(Path(self.destination).expanduser()))


def parse_line(line: str, lineno: int = 0, source: str = "<manifest>") -> Optional[ManifestEntry]:
    """Parse a manifest line; blank and comment lines yield None."""
    if not line.strip() or line.lstrip().startswith("#"):
        return None

    fields = [f.strip() for f in line.split(FIELD_SEPARATOR)]
    fields += [""] * (4 - len(fields))
    src, dest, backup, condition = fields[:4]

    if not src or not dest:
        raise ManifestError(
            f"{source}:{lineno}: expected source|destination, got {line.strip()!r}"
        )

    return ManifestEntry(
        source=src,
        destination=dest,
        backup=(backup or "yes").lower() != "no",
        condition=condition or None,
        lineno=lineno,
    )


def parse_manifest(text: str, source: str = "<manifest>") -> List[ManifestEntry]:
    entries = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        entry = parse_line(line, lineno, source)
        if entry is not None:
            entries.append(entry)
    return entries


def load_manifest(path: Path) -> List[ManifestEntry]:
    """Read and parse a manifest file.

    Raises:
        ManifestError: If the file does not exist or a line is malformed.
    """
    path = Path(path)
    if not path.is_file():
        raise ManifestError(f"Manifest not found: {path}")
    return parse_manifest(path.read_text(), str(path))
