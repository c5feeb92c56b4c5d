# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class Parameter:
    """A named recipe parameter, optionally with a default value."""
    name: str
    default: str | None = None

    @property
    def required(self) -> bool:
        return self.default is None


@dataclass(frozen=True)
class Line:
    """A single command line inside a recipe body."""
    text: str
    quiet: bool = False            # `@` prefix: don't echo this line
    ignore_errors: bool = False    # `-` prefix: keep going on non-zero exit
    lineno: int = 0


@dataclass
class Recipe:
    """
    A recipe: parameters + dependencies + body lines.

    Dependencies run (with their own defaults) before the body does.
    """
    name: str
    body: list[Line] = field(default_factory=list)
    parameters: list[Parameter] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)

    description: Optional[str] = None

    # attributes
    quiet: bool = False
    private: bool = False
    default: bool = False

    lineno: int = 0

    @property
    def hidden(self) -> bool:
        return self.private or self.name.startswith("_")

    @property
    def required_parameters(self) -> list[Parameter]:
        return [p for p in self.parameters if p.required]

    def parameter_names(self) -> list[str]:
        return [p.name for p in self.parameters]


@dataclass
class RecipeSet:
    """All recipes of one recipe file, in definition order."""
    recipes: Dict[str, Recipe] = field(default_factory=dict)
    variables: Dict[str, str] = field(default_factory=dict)
    default: Optional[str] = None

    def __contains__(self, name: object) -> bool:
        return name in self.recipes

    def __getitem__(self, name: str) -> Recipe:
        return self.recipes[name]

    def __iter__(self) -> Iterator[Recipe]:
        return iter(self.recipes.values())

    def __len__(self) -> int:
        return len(self.recipes)

    def names(self) -> list[str]:
        return list(self.recipes)

    def visible(self) -> list[Recipe]:
        return [r for r in self.recipes.values() if not r.hidden]

    def default_recipe(self) -> Optional[str]:
        """Name of the recipe to run when none is requested."""
        if self.default is not None:
            return self.default
        for recipe in self.recipes.values():
            if recipe.default:
                return recipe.name
        return None


@dataclass(frozen=True)
class Request:
    """One recipe named on the command line, with its positional arguments."""
    name: str
    arguments: Tuple[str, ...] = ()


@dataclass
class ExecutionPlan:
    """
    Deduplicated, dependency-respecting order of recipes for one invocation.

    `arguments` only has entries for recipes the caller asked for; anything
    pulled in as a prerequisite runs with its declared defaults.
    """
    order: List[str] = field(default_factory=list)
    arguments: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    def __iter__(self) -> Iterator[str]:
        return iter(self.order)

    def __len__(self) -> int:
        return len(self.order)

    @property
    def empty(self) -> bool:
        return not self.order

    def requested(self, name: str) -> bool:
        return name in self.arguments
