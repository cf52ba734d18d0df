"""Logging configuration for setup-os.

This module provides centralized logging configuration for the setup-os
package, plus the small set of console helpers used to print step headers
and dry-run notices in a consistent style.

Example:
    ```python
    from setup_os.core.logging import setup_logging

    # Basic setup with default settings
    setup_logging()

    # Setup with debug mode and a log file
    setup_logging(debug=True, log_file="~/logs/setup-os.log")

    import logging
    logger = logging.getLogger(__name__)
    logger.info("Linking dotfiles")
    logger.warning("Failed to install: %s", "ripgrep")
    ```
"""

import logging
import sys
from pathlib import Path
from types import TracebackType
from typing import Optional, Type

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

# Create console for rich output
console = Console()

HEADER_WIDTH = 60


def setup_logging(
    debug: bool = False,
    log_file: Optional[str] = None,
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
) -> None:
    """Set up logging configuration.

    Console output goes through a rich handler; the optional file handler
    uses a plain format and always records debug messages.

    Args:
        debug: Whether to enable debug logging (default: False).
        log_file: Optional path to a log file. ``~`` is expanded and parent
                 directories are created.
        log_format: Format string for the file handler.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)

    # Remove existing handlers
    root_logger.handlers.clear()

    console_handler = RichHandler(
        console=console,
        show_time=False,
        show_path=debug,
        enable_link_path=debug,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=debug,
    )
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.DEBUG)  # Always log debug to file
        file_handler.setFormatter(logging.Formatter(log_format))
        root_logger.addHandler(file_handler)

    logger = logging.getLogger(__name__)
    logger.debug("Logging initialized (debug=%s)", debug)
    if log_file:
        logger.debug("Log file: %s", log_file)

    def handle_exception(
        exc_type: Type[BaseException],
        exc_value: BaseException,
        exc_traceback: Optional[TracebackType],
    ) -> None:
        """Log uncaught exceptions instead of printing a bare traceback."""
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        logger.critical(
            "Uncaught exception",
            exc_info=(exc_type, exc_value, exc_traceback),
        )

    sys.excepthook = handle_exception


def print_header(title: str) -> None:
    """Print a boxed section header."""
    rule = "=" * HEADER_WIDTH
    padding = max((HEADER_WIDTH - len(title) - 2) // 2, 0)
    console.print()
    console.print(f"[bold blue]{rule}[/]")
    console.print(f"[bold blue]{' ' * padding} {escape(title)}[/]")
    console.print(f"[bold blue]{rule}[/]")
    console.print()


def print_step(message: str) -> None:
    """Print a top-level step marker."""
    console.print(f"[bold cyan]==>[/] [bold]{escape(message)}[/]")


def print_substep(message: str) -> None:
    """Print an indented sub-step marker."""
    console.print(f"  [cyan]->[/] {escape(message)}")


def print_dry(message: str) -> None:
    """Print an action that dry-run mode skipped."""
    console.print(f"[magenta]\\[DRY-RUN][/] {escape(message)}")
