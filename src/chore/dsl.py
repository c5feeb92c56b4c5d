# dsl.py
from __future__ import annotations

from typing import Dict, List, Optional, Union

from .errors import ParseError
from .model import Line, Parameter, Recipe, RecipeSet
from .parser import validate


# ---------------------------------------------------------------------
# Line / parameter helpers
# ---------------------------------------------------------------------

def sh(cmd: str, *, quiet: bool = False, ignore_errors: bool = False) -> Line:
    """Create a body line."""
    return Line(text=cmd, quiet=quiet, ignore_errors=ignore_errors)


def param(name: str, default: str | None = None) -> Parameter:
    return Parameter(name=name, default=default)


# ---------------------------------------------------------------------
# Functional Recipe helper
# ---------------------------------------------------------------------

def recipe(
    name: str,
    *body: Union[str, Line],  # allow: recipe("x", "cmd", sh("cmd", quiet=True))
    needs: Optional[List[str]] = None,
    params: Optional[List[Union[str, Parameter]]] = None,
    description: str | None = None,
    quiet: bool = False,
    private: bool = False,
    default: bool = False,
) -> Recipe:
    lines = [b if isinstance(b, Line) else sh(b) for b in body]
    parameters = [p if isinstance(p, Parameter) else param(p) for p in (params or [])]

    names = [p.name for p in parameters]
    if len(set(names)) != len(names):
        raise ParseError(f"Recipe '{name}' has duplicate parameters: {names}")

    return Recipe(
        name=name,
        body=lines,
        parameters=parameters,
        dependencies=list(needs or []),
        description=description,
        quiet=quiet,
        private=private,
        default=default,
    )


# ---------------------------------------------------------------------
# RecipeSet helper
# ---------------------------------------------------------------------

def recipes(
    *items: Recipe,
    default: str | None = None,
    variables: Optional[Dict[str, str]] = None,
) -> RecipeSet:
    """
    Build a validated RecipeSet in memory, no recipe file needed:

        recipes(
            recipe("fmt-check", "cargo fmt --all --check"),
            recipe("lint", "cargo clippy", needs=["fmt-check"]),
        )
    """
    mapping: Dict[str, Recipe] = {}
    for item in items:
        if item.name in mapping:
            raise ParseError(f"Recipe '{item.name}' is defined more than once")
        mapping[item.name] = item

    result = RecipeSet(recipes=mapping, variables=dict(variables or {}), default=default)
    validate(result)
    return result
