# cli.py
from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Sequence

import click

from chore import __version__
from chore.dag import resolve, unknown_recipe
from chore.errors import EXIT_FAILURE, EXIT_INTERRUPTED, ChoreError
from chore.listing import render_listing, render_recipe, render_summary
from chore.logging import configure as configure_logging
from chore.model import RecipeSet, Request
from chore.parser import find_recipe_file, load_recipe_file
from chore.runner import RunOptions, execute
from chore.ui.console import Console, get_console, set_console


def group_requests(recipes: RecipeSet, tokens: Sequence[str]) -> List[Request]:
    """
    Split `name [args...] name [args...]` into requests.

    Each recipe takes up to as many following tokens as it has parameters;
    the next token starts a new request. Unknown names are passed through
    so resolve() reports them.
    """
    requests: List[Request] = []
    i = 0
    while i < len(tokens):
        name = tokens[i]
        i += 1
        count = len(recipes[name].parameters) if name in recipes else 0
        args = tuple(tokens[i:i + count])
        i += len(args)
        requests.append(Request(name, args))
    return requests


def _load(recipe_file: str | None) -> RecipeSet:
    console = get_console()
    path = Path(recipe_file) if recipe_file else find_recipe_file()
    console.print_debug(f"Using recipe file: {path}")
    return load_recipe_file(path)


@click.command(
    context_settings={
        "ignore_unknown_options": True,
        "allow_interspersed_args": False,
        "help_option_names": ["-h", "--help"],
    }
)
@click.option("-l", "--list", "list_", is_flag=True, default=False, help="List available recipes and exit")
@click.option("--summary", is_flag=True, default=False, help="Print recipe names on a single line")
@click.option("--show", default=None, metavar="RECIPE", help="Print a recipe's source")
@click.option(
    "-f",
    "--file",
    "recipe_file",
    default=None,
    type=click.Path(dir_okay=False),
    help="Recipe file (defaults to the nearest Chorefile in this or a parent directory)",
)
@click.option("-n", "--dry-run", is_flag=True, default=False, help="Print commands without running them")
@click.option("-q", "--quiet", is_flag=True, default=False, help="Don't echo command lines")
@click.option("--shell", default=None, help="Shell used to run each line [default: sh -cu]")
@click.option("--debug", is_flag=True, default=False, help="Enable debug logging and stack traces")
@click.version_option(__version__, prog_name="chore")
@click.argument("arguments", nargs=-1, type=click.UNPROCESSED)
def cli(list_, summary, show, recipe_file, dry_run, quiet, shell, debug, arguments):
    """chore: run recipes from a Chorefile.

    \b
    chore                 run the default recipe, or list recipes
    chore RECIPE [ARGS]   run RECIPE (and its dependencies) with ARGS
    chore A B             run several recipes; shared dependencies run once
    """
    console = Console(debug=debug)
    set_console(console)
    configure_logging(debug)

    try:
        recipes = _load(recipe_file)

        if list_:
            console.print_info(render_listing(recipes))
            return
        if summary:
            console.print_info(render_summary(recipes))
            return
        if show is not None:
            if show not in recipes:
                raise unknown_recipe(recipes, show)
            console.print_info(render_recipe(recipes[show]))
            return

        plan = resolve(recipes, group_requests(recipes, arguments))
        if plan.empty:
            console.print_info(render_listing(recipes))
            return

        options = RunOptions.with_shell(shell, quiet=quiet, dry_run=dry_run)
        status = execute(recipes, plan, options)
        if status:
            sys.exit(status)

    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(EXIT_INTERRUPTED)
    except ChoreError as e:
        console.print_error(e.title, str(e), suggestion=e.hint)
        sys.exit(e.exit_status)
    except Exception as e:
        console.print_exception(e)
        sys.exit(EXIT_FAILURE)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
