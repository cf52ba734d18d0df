"""Cross-platform workstation setup: packages, dotfiles and OS preferences."""

__version__ = "0.1.0"
