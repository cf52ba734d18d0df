"""External command execution for setup-os."""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from .errors import CommandError
from .logging import print_dry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command."""

    argv: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return (self.stdout + self.stderr).strip()


def format_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def command_exists(name: str) -> bool:
    """Check if an executable is on PATH."""
    return shutil.which(name) is not None


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = False,
    dry_run: bool = False,
    capture: bool = True,
    env: Optional[Mapping[str, str]] = None,
) -> CommandResult:
    """Run a command, or just print it in dry-run mode.

    Args:
        argv: Command and arguments.
        check: Raise CommandError on a non-zero exit.
        dry_run: Print the command instead of running it.
        capture: Capture stdout/stderr. Installers that need the terminal
            (sudo password prompts) pass False.
        env: Extra environment variables.

    Returns:
        CommandResult: Exit status and captured output. A missing executable
        is reported as exit status 127.
    """
    argv_list = list(argv)
    if dry_run:
        print_dry(format_argv(argv_list))
        return CommandResult(argv=argv_list, returncode=0)

    logger.debug("CMD %s", format_argv(argv_list))
    try:
        p = subprocess.run(
            argv_list,
            text=True,
            stdout=subprocess.PIPE if capture else None,
            stderr=subprocess.PIPE if capture else None,
            env=dict(os.environ, **(env or {})),
        )
    except FileNotFoundError:
        result = CommandResult(argv=argv_list, returncode=127, stderr=f"{argv_list[0]}: not found")
    else:
        result = CommandResult(
            argv=argv_list,
            returncode=p.returncode,
            stdout=p.stdout or "",
            stderr=p.stderr or "",
        )

    if result.stderr:
        logger.debug("STDERR %s", result.stderr.strip())
    if check and not result.ok:
        raise CommandError(argv_list, result.returncode, result.output)
    return result


def query_lines(argv: Sequence[str]) -> List[str]:
    """Run a read-only query command and return its non-empty output lines.

    Queries run even in dry-run mode. A failing query yields no lines.
    """
    result = run_cmd(argv)
    if not result.ok:
        logger.debug("Query failed (%s): %s", result.returncode, format_argv(argv))
        return []
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]
