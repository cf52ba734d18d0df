"""Machine-local shell and git files that live outside the dotfiles repo."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import click

from .logging import print_dry, print_step, print_substep

logger = logging.getLogger(__name__)

ZSHRC_LOCAL_TEMPLATE = """\
# ~/.zshrc.local - Machine-specific shell configuration
# This file is sourced by .zshrc and is not tracked by git

# Add your machine-specific aliases and functions here
# Example:
# export PATH="$HOME/custom/bin:$PATH"
# alias myalias='my-command'
"""

GITCONFIG_LOCAL_TEMPLATE = """\
# ~/.gitconfig.local - Machine-specific git configuration
# This file is included by .gitconfig and is not tracked by git

{notice}[user]
    name = {name}
    email = {email}

# Optional: signing key
# [user]
#     signingkey = YOUR_GPG_KEY_ID
# [commit]
#     gpgsign = true
"""

TITLE_MARKER = "# Terminal title for tmux"

BASH_TITLE_SNIPPET = """\
# Terminal title for tmux (shows hostname in status bar)
PROMPT_COMMAND='printf "\\e]2;%s\\a" "$HOSTNAME"'${PROMPT_COMMAND:+;$PROMPT_COMMAND}
"""

ZSH_TITLE_SNIPPET = """\
# Terminal title for tmux (shows hostname in status bar)
precmd_set_title() { print -Pn "\\e]2;%m\\a" }
autoload -Uz add-zsh-hook
add-zsh-hook precmd precmd_set_title
"""


def _interactive(force: bool) -> bool:
    return sys.stdin.isatty() and not force


def create_zshrc_local(home: Path, dry_run: bool = False) -> bool:
    """Create ``~/.zshrc.local`` from a template; False if it already exists."""
    path = home / ".zshrc.local"
    if path.exists():
        print_substep(f"Already exists: {path}")
        return False

    print_substep(f"Creating: {path}")
    if dry_run:
        print_dry(f"touch {path}")
        return True
    path.write_text(ZSHRC_LOCAL_TEMPLATE)
    return True


def create_gitconfig_local(
    home: Path,
    dry_run: bool = False,
    interactive: Optional[bool] = None,
    force: bool = False,
) -> bool:
    """Create ``~/.gitconfig.local``, asking for the git identity when interactive."""
    path = home / ".gitconfig.local"
    if path.exists():
        print_substep(f"Already exists: {path}")
        return False

    print_substep(f"Creating: {path}")
    if dry_run:
        print_dry("Would prompt for git name and email (interactive) or create template")
        return True

    if interactive is None:
        interactive = _interactive(force)

    if interactive:
        logger.info("Setting up git configuration...")
        name = click.prompt("Git user name", default="", show_default=False)
        email = click.prompt("Git email", default="", show_default=False)
        path.write_text(GITCONFIG_LOCAL_TEMPLATE.format(notice="", name=name, email=email))
        logger.info("Git configuration saved to %s", path)
    else:
        path.write_text(
            GITCONFIG_LOCAL_TEMPLATE.format(
                notice="# IMPORTANT: Set your user info here\n",
                name="Your Name",
                email="your.email@example.com",
            )
        )
        logger.info("Please edit %s with your settings", path)
    return True


def create_local_overrides(
    home: Optional[Path] = None,
    dry_run: bool = False,
    interactive: Optional[bool] = None,
    force: bool = False,
) -> List[Path]:
    """Create missing local override files and return the ones created."""
    home = home or Path.home()
    print_step("Checking local override files")

    created = []
    if create_zshrc_local(home, dry_run=dry_run):
        created.append(home / ".zshrc.local")
    # Only an explicit "false" opts out of the git identity file
    if os.environ.get("DOTFILES_GIT") != "false":
        if create_gitconfig_local(home, dry_run=dry_run, interactive=interactive, force=force):
            created.append(home / ".gitconfig.local")
    return created


def _append_snippet(path: Path, snippet: str, dry_run: bool) -> bool:
    if TITLE_MARKER in path.read_text():
        logger.info("%s already configured", path.name)
        return False
    if dry_run:
        print_dry(f"Would add terminal title config to {path}")
        return False
    with open(path, "a", encoding="utf-8") as f:
        f.write(f"\n{snippet}")
    logger.info("Added terminal title config to %s", path)
    return True


def configure_shell_title(home: Optional[Path] = None, dry_run: bool = False) -> bool:
    """Make bash and zsh set the terminal title to the hostname.

    Returns:
        bool: True if any file was changed.
    """
    home = home or Path.home()
    bashrc = home / ".bashrc"
    zshrc = home / ".zshrc"
    added = False

    if bashrc.is_file():
        added |= _append_snippet(bashrc, BASH_TITLE_SNIPPET, dry_run)
    if zshrc.is_file():
        added |= _append_snippet(zshrc, ZSH_TITLE_SNIPPET, dry_run)

    if not bashrc.exists() and not zshrc.exists():
        if dry_run:
            print_dry(f"Would create {bashrc} with terminal title config")
        else:
            bashrc.write_text(BASH_TITLE_SNIPPET)
            logger.info("Created %s with terminal title config", bashrc)
            added = True

    if added:
        logger.info("Restart your shell or run: source ~/.bashrc (or ~/.zshrc)")
    return added
