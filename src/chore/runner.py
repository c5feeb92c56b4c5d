# runner.py
from __future__ import annotations

import shlex
import signal
import subprocess
import sys
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import (
    EXIT_OK,
    MissingArgumentError,
    SubprocessFailure,
    TooManyArgumentsError,
)
from .logging import get_logger
from .model import ExecutionPlan, Line, Recipe, RecipeSet
from .template import render
from .ui.console import get_console

log = get_logger(__name__)

DEFAULT_SHELL = ("sh", "-cu")


@dataclass
class RunOptions:
    """How command lines get dispatched. Built by the CLI, passed in explicitly."""
    shell: Tuple[str, ...] = DEFAULT_SHELL
    quiet: bool = False
    dry_run: bool = False

    @classmethod
    def with_shell(cls, shell: str | None, **kwargs) -> "RunOptions":
        if not shell:
            return cls(**kwargs)
        return cls(shell=tuple(shlex.split(shell)), **kwargs)


@dataclass(frozen=True)
class Command:
    """A body line after substitution, ready to dispatch."""
    recipe: str
    text: str
    quiet: bool = False
    ignore_errors: bool = False


@dataclass
class PreparedRecipe:
    recipe: Recipe
    values: Dict[str, str]
    commands: List[Command] = field(default_factory=list)


# ----------------------------------------------------------------------
# Binding + substitution (pure, runs before anything is spawned)
# ----------------------------------------------------------------------

def bind_arguments(
    recipe: Recipe,
    arguments: Sequence[str] = (),
    *,
    as_dependency: bool = False,
) -> Dict[str, str]:
    """
    Map positional call arguments onto a recipe's parameters.

    Unfilled parameters take their defaults. A prerequisite never gets
    call arguments, so it must have defaults for everything.
    """
    if len(arguments) > len(recipe.parameters):
        raise TooManyArgumentsError(recipe.name, len(recipe.parameters), len(arguments))

    values: Dict[str, str] = {}
    for i, param in enumerate(recipe.parameters):
        if i < len(arguments):
            values[param.name] = arguments[i]
        elif param.default is not None:
            values[param.name] = param.default
        else:
            raise MissingArgumentError(recipe.name, param.name, as_dependency=as_dependency)
    return values


def _render_line(recipe: Recipe, line: Line, scope: Dict[str, str]) -> Command:
    return Command(
        recipe=recipe.name,
        text=render(line.text, scope),
        quiet=recipe.quiet or line.quiet,
        ignore_errors=line.ignore_errors,
    )


def prepare(recipes: RecipeSet, plan: ExecutionPlan) -> List[PreparedRecipe]:
    """
    Bind arguments and substitute placeholders for every planned recipe.

    Doing all of it up front means a missing argument anywhere in the plan
    fails before the first subprocess starts.
    """
    prepared: List[PreparedRecipe] = []
    for name in plan:
        recipe = recipes[name]
        requested = plan.requested(name)
        values = bind_arguments(
            recipe,
            plan.arguments.get(name, ()),
            as_dependency=not requested,
        )
        scope = dict(recipes.variables)
        scope.update(values)
        commands = [_render_line(recipe, line, scope) for line in recipe.body]
        prepared.append(PreparedRecipe(recipe=recipe, values=values, commands=commands))
    return prepared


# ----------------------------------------------------------------------
# Execution
# ----------------------------------------------------------------------

class PlanRunner:
    """
    Runs prepared recipes one command line at a time.

    Each line is its own subprocess (cwd, env and stdio inherited). The first
    non-zero exit stops the whole plan. SIGINT/SIGTERM received while a child
    is running are forwarded to it, and nothing further is started.
    """

    def __init__(self, options: RunOptions | None = None):
        self.options = options or RunOptions()
        self._current: Optional[subprocess.Popen] = None
        self._terminated: Optional[int] = None

    # ---- signals ----
    def _forward(self, signum, frame):
        self._terminated = signum
        proc = self._current
        if proc is not None and proc.poll() is None:
            log.debug("forwarding signal %s to pid %s", signum, proc.pid)
            proc.send_signal(signum)

    def _install_handler(self):
        if threading.current_thread() is not threading.main_thread():
            return None
        return signal.signal(signal.SIGTERM, self._forward)

    # ---- primitives ----
    def _run_command(self, command: Command) -> None:
        console = get_console()
        if self._terminated is not None:
            # signal arrived between two lines: don't start another one
            raise SubprocessFailure(
                recipe=command.recipe,
                command=command.text,
                status=-self._terminated,
                signal=self._terminated,
                started=False,
            )
        if not (self.options.quiet or command.quiet):
            console.print_command(command.text)

        argv = [*self.options.shell, command.text]
        log.debug("[%s] exec %s", command.recipe, argv)
        sys.stdout.flush()
        sys.stderr.flush()

        proc = subprocess.Popen(argv)
        self._current = proc
        try:
            returncode = proc.wait()
        except KeyboardInterrupt:
            if proc.poll() is None:
                proc.send_signal(signal.SIGINT)
            proc.wait()
            raise
        finally:
            self._current = None

        log.debug("[%s] exit %s", command.recipe, returncode)

        if self._terminated is not None:
            raise SubprocessFailure(
                recipe=command.recipe,
                command=command.text,
                status=returncode,
                signal=self._terminated,
            )

        if returncode == 0:
            return

        failure = SubprocessFailure(
            recipe=command.recipe,
            command=command.text,
            status=returncode,
            signal=-returncode if returncode < 0 else None,
        )
        if command.ignore_errors and failure.signal is None:
            console.print_warning(f"{failure} (ignored)")
            return
        raise failure

    # ---- public ----
    def run(self, prepared: Sequence[PreparedRecipe]) -> None:
        """Run everything in order; raises SubprocessFailure on the first failure."""
        if self.options.dry_run:
            for item in prepared:
                for command in item.commands:
                    get_console().print_command(command.text)
            return

        previous = self._install_handler()
        try:
            for item in prepared:
                log.debug("running recipe %s", item.recipe.name)
                for command in item.commands:
                    self._run_command(command)
        finally:
            if previous is not None:
                signal.signal(signal.SIGTERM, previous)


def execute(
    recipes: RecipeSet,
    plan: ExecutionPlan,
    options: RunOptions | None = None,
) -> int:
    """
    Execute a plan and return its exit status.

    Request errors (missing/too many arguments) are raised before anything
    runs. A failing command is reported on the console and its status
    returned.
    """
    prepared = prepare(recipes, plan)
    runner = PlanRunner(options)
    try:
        runner.run(prepared)
    except SubprocessFailure as e:
        get_console().print_failure(e)
        return e.exit_status
    return EXIT_OK
