"""Console output formatting utilities for chore."""

from __future__ import annotations

import sys
from typing import Optional


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_command(self, command: str) -> None:
        """Echo a command line before it runs (stderr, so stdout stays clean)."""
        print(command, file=sys.stderr)

    def print_failure(self, failure) -> None:
        """
        Print a failed command.

        Args:
            failure: SubprocessFailure describing the recipe, command and status
        """
        print(f"RECIPE FAILED: {failure.recipe}", file=sys.stderr)
        print(f"Command: {failure.command}", file=sys.stderr)
        if not failure.started:
            print(f"Not started: received signal {failure.signal}", file=sys.stderr)
        elif failure.signal is not None:
            print(f"Signal: {failure.signal}", file=sys.stderr)
        else:
            print(f"Exit code: {failure.status}", file=sys.stderr)

    def print_warning(self, message: str) -> None:
        """Print a non-fatal warning."""
        print(f"WARNING: {message}", file=sys.stderr)

    def print_error(
        self,
        title: str,
        message: str,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            suggestion: Optional suggestion for user
        """
        print(f"ERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exc()
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
