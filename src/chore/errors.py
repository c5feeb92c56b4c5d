# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

# Exit statuses the CLI hands back to its caller.
EXIT_OK = 0
EXIT_FAILURE = 1          # a command failed, or was killed by a signal
EXIT_USAGE = 2            # the request itself was invalid
EXIT_INTERRUPTED = 130


class ChoreError(Exception):
    """Base class for everything chore reports to the user."""

    title = "chore error"
    exit_status = EXIT_USAGE
    hint: Optional[str] = None


@dataclass
class ParseError(ChoreError):
    message: str
    lineno: int = 0
    path: Optional[str] = None

    title = "Could not parse recipe file"

    def __str__(self) -> str:
        where = self.path or "<recipes>"
        if self.lineno:
            where = f"{where}:{self.lineno}"
        return f"{where}: {self.message}"


@dataclass
class RecipeFileNotFound(ChoreError):
    searched: List[str] = field(default_factory=list)

    title = "No recipe file found"
    hint = "Create a Chorefile here or pass one with --file."

    def __str__(self) -> str:
        if not self.searched:
            return "No recipe file found"
        return f"No recipe file found (looked in {', '.join(self.searched)})"


@dataclass
class UnknownRecipeError(ChoreError):
    name: str
    suggestions: List[str] = field(default_factory=list)

    title = "Unknown recipe"
    hint = "Run `chore --list` to see the available recipes."

    def __str__(self) -> str:
        msg = f"Recipe '{self.name}' not found"
        if self.suggestions:
            msg += f". Did you mean: {', '.join(self.suggestions)}?"
        return msg


@dataclass
class CyclicDependencyError(ChoreError):
    cycle: List[str]

    title = "Dependency cycle"

    def __str__(self) -> str:
        return f"Recipe '{self.cycle[0]}' depends on itself: {' -> '.join(self.cycle)}"


@dataclass
class ConflictingArgumentsError(ChoreError):
    name: str
    first: tuple
    second: tuple

    title = "Conflicting arguments"

    def __str__(self) -> str:
        return (
            f"Recipe '{self.name}' requested twice with different arguments: "
            f"{list(self.first)} vs {list(self.second)}"
        )


@dataclass
class MissingArgumentError(ChoreError):
    recipe: str
    parameter: str
    as_dependency: bool = False

    title = "Missing argument"

    def __str__(self) -> str:
        if self.as_dependency:
            return (
                f"Recipe '{self.recipe}' is a dependency but parameter "
                f"'{self.parameter}' has no default"
            )
        return f"Recipe '{self.recipe}' requires a value for parameter '{self.parameter}'"


@dataclass
class TooManyArgumentsError(ChoreError):
    recipe: str
    expected: int
    given: int

    title = "Too many arguments"

    def __str__(self) -> str:
        return f"Recipe '{self.recipe}' takes at most {self.expected} argument(s) but {self.given} were given"


@dataclass
class SubprocessFailure(ChoreError):
    recipe: str
    command: str
    status: int
    signal: Optional[int] = None
    started: bool = True

    title = "Command failed"

    @property
    def exit_status(self) -> int:  # type: ignore[override]
        if self.signal is not None or self.status <= 0:
            return EXIT_FAILURE
        return self.status

    def __str__(self) -> str:
        if not self.started:
            return f"[{self.recipe}] command not started, received signal {self.signal}: {self.command}"
        if self.signal is not None:
            return f"[{self.recipe}] command killed by signal {self.signal}: {self.command}"
        return f"[{self.recipe}] command failed (exit={self.status}): {self.command}"
