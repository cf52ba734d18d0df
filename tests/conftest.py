"""Test configuration."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Generator, List, Tuple

import pytest
from click.testing import CliRunner

from setup_os.core import commands
from setup_os.core.commands import CommandResult
from setup_os.core.config import Config

FLAG_PREFIXES = ("PROFILE_", "DOTFILES_", "FORMULAE_", "CASKS_", "PACKAGES_", "SETUP_OS_")

MANIFEST = """\
# Test manifest
config/dotfiles/zsh/zshrc|~/.zshrc
config/dotfiles/tmux/tmux.conf|~/.config/tmux/tmux.conf

config/dotfiles/git/gitconfig|~/.gitconfig|yes|DOTFILES_GIT
config/dotfiles/claude/settings.json|~/.claude/settings.json|no|DOTFILES_CLAUDE
"""


@pytest.fixture(autouse=True)
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Point ``$HOME`` at a temporary directory and clear profile flags.

    Loading a profile exports its values into ``os.environ``; the original
    environment is restored after each test.
    """
    saved = dict(os.environ)
    for key in list(os.environ):
        if key.startswith(FLAG_PREFIXES):
            monkeypatch.delenv(key)

    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    yield home_dir

    os.environ.clear()
    os.environ.update(saved)


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    """Create a repository root with dotfile sources, a manifest and profiles."""
    root = tmp_path / "repo"
    sources = {
        "config/dotfiles/zsh/zshrc": "export EDITOR=vim\n",
        "config/dotfiles/tmux/tmux.conf": "set -g mouse on\n",
        "config/dotfiles/git/gitconfig": "[core]\n    pager = less\n",
        "config/dotfiles/claude/settings.json": "{}\n",
    }
    for relative, content in sources.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    (root / "config/dotfiles/manifest.txt").write_text(MANIFEST)

    profiles = root / "config/profiles"
    profiles.mkdir(parents=True)
    (profiles / "personal.conf").write_text(
        "# Personal\n"
        "PROFILE_OS=macos\n"
        "export FORMULAE_CORE=true\n"
        "CASKS_MEDIA=true\n"
        "DOTFILES_GIT=true\n"
        "DOTFILES_CLAUDE=true\n"
    )
    (profiles / "work.conf").write_text(
        "PROFILE_OS=macos\n"
        "FORMULAE_CORE=true\n"
        "CASKS_MEDIA=false\n"
        "PROFILE_MAS=false\n"
        "DOTFILES_CLAUDE=false\n"
    )
    (profiles / "server.conf").write_text(
        "PROFILE_OS=linux\n"
        "PROFILE_PACKAGES=true\n"
        'PACKAGES_CORE="true"\n'
    )
    return root


@pytest.fixture
def config(repo_root: Path) -> Config:
    """Create a configuration for the temporary repository root."""
    return Config(repo_root)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Return a CLI runner."""
    return CliRunner()


@pytest.fixture
def fake_commands(monkeypatch: pytest.MonkeyPatch) -> List[Tuple[str, ...]]:
    """Record external commands instead of running them.

    Every command succeeds with empty output. Modules import ``run_cmd`` by
    name, so each importing module is patched as well.
    """
    calls: List[Tuple[str, ...]] = []

    def fake_run_cmd(argv, *, check=False, dry_run=False, capture=True, env=None):
        calls.append(tuple(argv))
        return CommandResult(argv=list(argv), returncode=0)

    from setup_os.core import defaults, homebrew, linux

    for module in (commands, defaults, homebrew, linux):
        monkeypatch.setattr(module, "run_cmd", fake_run_cmd)
    return calls
