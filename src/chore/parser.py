# parser.py
from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import ParseError, RecipeFileNotFound
from .logging import get_logger
from .model import Line, Parameter, Recipe, RecipeSet
from .template import placeholders

log = get_logger(__name__)

RECIPE_FILE_NAMES = ("Chorefile", "chorefile", ".chorefile", "justfile", "Justfile")

_NAME = r"[A-Za-z_][A-Za-z0-9_-]*"
_NAME_RE = re.compile(rf"^{_NAME}$")
_HEADER_RE = re.compile(rf"^(?P<quiet>@)?(?P<name>{_NAME})(?P<rest>.*)$")
_ASSIGN_RE = re.compile(rf"^(?P<name>{_NAME})\s*:=\s*(?P<value>.*)$")
_ATTR_RE = re.compile(r"^\[(?P<attrs>[^\]]*)\]$")
_PARAM_RE = re.compile(
    rf"(?P<name>{_NAME})(?:\s*=\s*(?P<value>'[^']*'|\"[^\"]*\"|[^\s,()'\"]+))?"
)
_SEP_RE = re.compile(r"[\s,]*")

KNOWN_ATTRIBUTES = {"private", "default"}


# ----------------------------------------------------------------------
# Small helpers
# ----------------------------------------------------------------------

def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def _split_header(rest: str, lineno: int) -> Tuple[str, str]:
    """Split `<params>: <deps>` at the first colon outside quotes/parens."""
    quote: Optional[str] = None
    depth = 0
    for i, ch in enumerate(rest):
        if quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == ":" and depth == 0:
            return rest[:i], rest[i + 1:]
    raise ParseError("Expected ':' after recipe name", lineno)


def _parse_parameters(text: str, recipe: str, lineno: int) -> List[Parameter]:
    text = text.strip()
    if text.startswith("("):
        if not text.endswith(")"):
            raise ParseError(f"Unclosed parameter list for recipe '{recipe}'", lineno)
        text = text[1:-1]
    elif text.endswith(")"):
        raise ParseError(f"Unexpected ')' in header of recipe '{recipe}'", lineno)

    params: List[Parameter] = []
    seen: set[str] = set()
    pos = 0
    while True:
        pos = _SEP_RE.match(text, pos).end()
        if pos >= len(text):
            break
        m = _PARAM_RE.match(text, pos)
        if not m:
            raise ParseError(f"Invalid parameter in recipe '{recipe}': {text[pos:]!r}", lineno)
        name = m.group("name")
        if name in seen:
            raise ParseError(f"Recipe '{recipe}' has duplicate parameter '{name}'", lineno)
        seen.add(name)
        value = m.group("value")
        params.append(Parameter(name=name, default=_unquote(value) if value is not None else None))
        pos = m.end()
    return params


def _parse_dependencies(text: str, recipe: str, lineno: int) -> List[str]:
    deps = text.split()
    for dep in deps:
        if not _NAME_RE.match(dep):
            raise ParseError(f"Invalid dependency name '{dep}' in recipe '{recipe}'", lineno)
    return deps


def _build_body(raw: List[Tuple[int, str]]) -> List[Line]:
    """Dedent body lines, join `\\` continuations, strip `@`/`-` prefixes."""
    if not raw:
        return []
    indent = min(len(text) - len(text.lstrip()) for _, text in raw)

    joined: List[Tuple[int, str]] = []
    pending: Optional[Tuple[int, str]] = None
    for lineno, text in raw:
        text = text[indent:]
        if pending is not None:
            text = pending[1] + " " + text.strip()
            lineno = pending[0]
            pending = None
        if text.endswith("\\"):
            pending = (lineno, text[:-1].rstrip())
            continue
        joined.append((lineno, text))
    if pending is not None:
        joined.append(pending)

    body: List[Line] = []
    for lineno, text in joined:
        quiet = ignore = False
        while text[:1] in ("@", "-"):
            if text[0] == "@":
                quiet = True
            else:
                ignore = True
            text = text[1:]
        body.append(Line(text=text, quiet=quiet, ignore_errors=ignore, lineno=lineno))
    return body


# ----------------------------------------------------------------------
# Parse
# ----------------------------------------------------------------------

class _Parser:
    def __init__(self, path: Optional[str]):
        self.path = path
        self.result = RecipeSet()
        self.current: Optional[Recipe] = None
        self.raw_body: List[Tuple[int, str]] = []
        self.comment: Optional[str] = None
        self.attrs: List[str] = []
        self.attrs_line = 0
        self.default_line = 0
        self.after_directive = False

    def error(self, message: str, lineno: int) -> ParseError:
        return ParseError(message, lineno, self.path)

    def close_recipe(self) -> None:
        if self.current is not None:
            self.current.body = _build_body(self.raw_body)
        self.current = None
        self.raw_body = []
        self.after_directive = False

    def feed(self, lineno: int, raw: str) -> None:
        line = raw.rstrip()
        stripped = line.strip()

        if not stripped:
            self.comment = None
            return

        if line[0] in (" ", "\t"):
            if self.current is None:
                if self.after_directive:
                    raise self.error(
                    "'default:' does not take a body; to give the default recipe commands, "
                    "mark it with [default] instead",
                    lineno,
                )
                raise self.error("Body line is not indented under any recipe", lineno)
            self.raw_body.append((lineno, line))
            return

        self.close_recipe()

        if line.startswith("#"):
            self.comment = line[1:].strip() or None
            return

        m = _ATTR_RE.match(line)
        if m:
            for attr in (a.strip() for a in m.group("attrs").split(",")):
                if attr not in KNOWN_ATTRIBUTES:
                    raise self.error(f"Unknown attribute '{attr}'", lineno)
                self.attrs.append(attr)
            self.attrs_line = self.attrs_line or lineno
            return

        m = _ASSIGN_RE.match(line)
        if m:
            self.assign(m.group("name"), m.group("value").strip(), lineno)
            return

        m = _HEADER_RE.match(line)
        if not m:
            raise self.error(f"Expected recipe header, found {line!r}", lineno)
        self.header(m, lineno)

    def assign(self, name: str, value: str, lineno: int) -> None:
        if self.attrs:
            raise self.error("Attributes must be followed by a recipe", self.attrs_line)
        if name in self.result.variables:
            raise self.error(f"Variable '{name}' is assigned more than once", lineno)
        self.result.variables[name] = _unquote(value)
        self.comment = None

    def header(self, m: re.Match, lineno: int) -> None:
        name = m.group("name")
        try:
            params_text, deps_text = _split_header(m.group("rest"), lineno)
            params = _parse_parameters(params_text, name, lineno)
            deps = _parse_dependencies(deps_text, name, lineno)
        except ParseError as e:
            e.path = self.path
            raise

        if name == "default" and not params and not m.group("quiet") and not self.attrs:
            self.directive(deps, lineno)
            return

        if name in self.result.recipes:
            raise self.error(f"Recipe '{name}' is defined more than once", lineno)

        recipe = Recipe(
            name=name,
            parameters=params,
            dependencies=deps,
            description=self.comment,
            quiet=bool(m.group("quiet")),
            private="private" in self.attrs,
            default="default" in self.attrs,
            lineno=lineno,
        )
        self.result.recipes[name] = recipe
        self.current = recipe
        self.comment = None
        self.attrs = []
        self.attrs_line = 0

    def directive(self, deps: List[str], lineno: int) -> None:
        if not deps:
            raise self.error(
                "'default:' names the default recipe; to define a recipe, mark it with [default] instead",
                lineno,
            )
        if len(deps) != 1:
            raise self.error("'default:' takes exactly one recipe name", lineno)
        if self.result.default is not None:
            raise self.error("Default recipe is set more than once", lineno)
        self.result.default = deps[0]
        self.default_line = lineno
        self.after_directive = True
        self.comment = None

    def finish(self) -> RecipeSet:
        self.close_recipe()
        if self.attrs:
            raise self.error("Attributes must be followed by a recipe", self.attrs_line)
        validate(self.result, self.path, self.default_line)
        return self.result


def validate(recipes: RecipeSet, path: Optional[str] = None, default_line: int = 0) -> None:
    """
    Load-time checks that need the whole file:
      - every dependency names a defined recipe (forward references are fine)
      - the default recipe exists and is unique
      - every placeholder names a parameter or a top-level variable
    """
    for recipe in recipes:
        for dep in recipe.dependencies:
            if dep not in recipes:
                raise ParseError(
                    f"Recipe '{recipe.name}' depends on unknown recipe '{dep}'",
                    recipe.lineno,
                    path,
                )

        known = set(recipes.variables) | set(recipe.parameter_names())
        for line in recipe.body:
            for key in placeholders(line.text):
                if key not in known:
                    raise ParseError(
                        f"Recipe '{recipe.name}' uses undefined variable '{key}'",
                        line.lineno or recipe.lineno,
                        path,
                    )

    marked = [r.name for r in recipes if r.default]
    if recipes.default is not None and recipes.default not in recipes:
        raise ParseError(f"Default recipe '{recipes.default}' is not defined", default_line, path)
    if len(marked) + (recipes.default is not None) > 1:
        raise ParseError("More than one default recipe", default_line or recipes[marked[-1]].lineno, path)


def parse(source: str, path: str | None = None) -> RecipeSet:
    """Parse recipe-file text into a RecipeSet."""
    parser = _Parser(path)
    for lineno, raw in enumerate(source.splitlines(), start=1):
        parser.feed(lineno, raw)
    result = parser.finish()
    log.debug("parsed %d recipe(s) from %s", len(result), path or "<string>")
    return result


# ----------------------------------------------------------------------
# Recipe file loading
# ----------------------------------------------------------------------

def find_recipe_file(start: str | Path | None = None) -> Path:
    """
    Look for a recipe file in `start` (default: cwd) and then each parent.

    Raises:
        RecipeFileNotFound: if no directory up to the filesystem root has one
    """
    here = Path(start or ".").expanduser().resolve()
    searched: List[str] = []
    for directory in (here, *here.parents):
        searched.append(str(directory))
        for candidate in RECIPE_FILE_NAMES:
            path = directory / candidate
            if path.is_file():
                return path
    raise RecipeFileNotFound(searched=searched)


def load_recipe_file(path: str | Path) -> RecipeSet:
    """Read and parse a recipe file."""
    recipe_path = Path(path).expanduser()
    if not recipe_path.is_file():
        raise RecipeFileNotFound(searched=[str(recipe_path)])
    try:
        source = recipe_path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as e:
        raise ParseError(f"not valid UTF-8: {e}", 0, str(recipe_path)) from e
    return parse(source, path=str(recipe_path))
