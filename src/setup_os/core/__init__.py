"""Core functionality for setup-os."""

from .config import Config
from .dotfiles import DotfilesManager
from .manifest import ManifestEntry, load_manifest
from .profile import ProfileStore
from .symlink import SymlinkManager

__all__ = [
    "Config",
    "DotfilesManager",
    "ManifestEntry",
    "ProfileStore",
    "SymlinkManager",
    "load_manifest",
]
