"""Profiles: named sets of boolean feature flags.

A profile is a ``config/profiles/<name>.conf`` file of shell-style
assignments. Loading a profile exports every key into ``os.environ`` so
manifest conditions and package category gates can read them.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, MutableMapping, Optional

from .errors import ProfileError

logger = logging.getLogger(__name__)

PROFILE_SUFFIX = ".conf"

_ASSIGNMENT = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)=(.*)$")


def parse_value(raw: str) -> str:
    raw = raw.strip()
    if raw[:1] in ("'", '"'):
        quote = raw[0]
        end = raw.find(quote, 1)
        return raw[1:end] if end != -1 else raw[1:]
    # Bare value: an inline comment needs leading whitespace
    return re.split(r"\s+#", raw, maxsplit=1)[0].strip()


def parse_profile(text: str, source: str = "<profile>") -> Dict[str, str]:
    """Parse profile text into a key/value mapping.

    Raises:
        ProfileError: On a line that is not a comment or an assignment.
    """
    values: Dict[str, str] = {}
    for lineno, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        match = _ASSIGNMENT.match(stripped)
        if not match:
            raise ProfileError(f"{source}:{lineno}: expected KEY=value, got {stripped!r}")
        values[match.group(1)] = parse_value(match.group(2))
    return values


def flag_enabled(name: str, default: bool = True, env: Optional[Mapping[str, str]] = None) -> bool:
    """Check a profile flag.

    A set flag is enabled only when its value is exactly ``"true"``.
    """
    env = os.environ if env is None else env
    value = env.get(name)
    if value is None:
        return default
    return value == "true"


@dataclass
class Profile:
    """A parsed profile file."""

    name: str
    path: Path
    values: Dict[str, str] = field(default_factory=dict)

    @property
    def os(self) -> Optional[str]:
        return self.values.get("PROFILE_OS") or None

    def supports(self, os_name: str) -> bool:
        return self.os is None or self.os == os_name

    def apply(self, env: Optional[MutableMapping[str, str]] = None) -> None:
        """Export the profile into the environment."""
        env = os.environ if env is None else env
        env.update(self.values)
        env["PROFILE_NAME"] = self.name


class ProfileStore:
    """Find and load profiles from a directory."""

    def __init__(self, profiles_dir: Path) -> None:
        self.profiles_dir = Path(profiles_dir)

    def names(self, os_name: Optional[str] = None) -> List[str]:
        """List profile names, optionally only those usable on ``os_name``."""
        if not self.profiles_dir.is_dir():
            return []
        names = []
        for path in sorted(self.profiles_dir.glob(f"*{PROFILE_SUFFIX}")):
            if not path.is_file():
                continue
            if os_name is not None and not self.get(path.stem).supports(os_name):
                continue
            names.append(path.stem)
        return names

    def get(self, name: str) -> Profile:
        path = self.profiles_dir / f"{name}{PROFILE_SUFFIX}"
        if not path.is_file():
            available = ", ".join(self.names()) or "none"
            raise ProfileError(f"Profile not found: {name} (available: {available})")
        return Profile(name=name, path=path, values=parse_profile(path.read_text(), str(path)))

    def load(self, name: str, env: Optional[MutableMapping[str, str]] = None) -> Profile:
        """Read a profile and export it into the environment."""
        profile = self.get(name)
        logger.info("Loading profile: %s", name)
        profile.apply(env)
        return profile
