from __future__ import annotations

from typing import List

from .model import Parameter, Recipe, RecipeSet

INDENT = "    "


def _format_default(value: str) -> str:
    if "'" in value:
        return f'"{value}"'
    return f"'{value}'"


def format_parameter(param: Parameter) -> str:
    if param.default is None:
        return param.name
    return f"{param.name}={_format_default(param.default)}"


def signature(recipe: Recipe) -> str:
    """`name param1 param2='x'`, the way it would be typed on the command line."""
    return " ".join([recipe.name, *(format_parameter(p) for p in recipe.parameters)])


def render_listing(recipes: RecipeSet) -> str:
    """
    Human listing of every non-private recipe, in definition order.

    Pure function of the RecipeSet: the same set always renders the same text.
    """
    visible = recipes.visible()
    lines = ["Available recipes:"]
    width = max((len(signature(r)) for r in visible if r.description), default=0)
    for recipe in visible:
        sig = signature(recipe)
        if recipe.description:
            lines.append(f"{INDENT}{sig.ljust(width)} # {recipe.description}")
        else:
            lines.append(f"{INDENT}{sig}")
    return "\n".join(lines)


def render_summary(recipes: RecipeSet) -> str:
    return " ".join(r.name for r in recipes.visible())


def render_recipe(recipe: Recipe) -> str:
    """Canonical source form of one recipe (for `--show`)."""
    out: List[str] = []
    if recipe.description:
        out.append(f"# {recipe.description}")
    attrs = [a for a, on in (("private", recipe.private), ("default", recipe.default)) if on]
    if attrs:
        out.append(f"[{', '.join(attrs)}]")

    header = ("@" if recipe.quiet else "") + signature(recipe) + ":"
    if recipe.dependencies:
        header += " " + " ".join(recipe.dependencies)
    out.append(header)

    for line in recipe.body:
        prefix = ("@" if line.quiet else "") + ("-" if line.ignore_errors else "")
        out.append(f"{INDENT}{prefix}{line.text}")
    return "\n".join(out)
