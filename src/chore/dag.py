# dag.py
from __future__ import annotations

from difflib import get_close_matches
from typing import Dict, Iterator, List, Sequence, Tuple

from .errors import ConflictingArgumentsError, CyclicDependencyError, UnknownRecipeError
from .logging import get_logger
from .model import ExecutionPlan, RecipeSet, Request

log = get_logger(__name__)

_GRAY = 1   # on the current DFS path
_BLACK = 2  # fully resolved, already in the plan


def unknown_recipe(recipes: RecipeSet, name: str) -> UnknownRecipeError:
    return UnknownRecipeError(name=name, suggestions=get_close_matches(name, recipes.names(), n=3))


def resolve(recipes: RecipeSet, requests: Sequence[Request] = ()) -> ExecutionPlan:
    """
    Turn the requested recipes into an ExecutionPlan.

    - dependencies come before their dependents, in declared order
    - a recipe reachable along several paths is planned once
    - no requests: fall back to the default recipe, or return an empty
      plan (the caller lists recipes instead)

    Raises:
      UnknownRecipeError, CyclicDependencyError, ConflictingArgumentsError
    """
    if not requests:
        default = recipes.default_recipe()
        if default is None:
            return ExecutionPlan()
        requests = [Request(default)]

    plan = ExecutionPlan()
    state: Dict[str, int] = {}

    for request in requests:
        if request.name not in recipes:
            raise unknown_recipe(recipes, request.name)

        arguments = tuple(request.arguments)
        previous = plan.arguments.get(request.name)
        if previous is not None and previous != arguments:
            raise ConflictingArgumentsError(request.name, previous, arguments)
        plan.arguments[request.name] = arguments

        _visit(recipes, request.name, state, plan.order)

    log.debug("plan: %s", " -> ".join(plan.order))
    return plan


def _visit(recipes: RecipeSet, root: str, state: Dict[str, int], order: List[str]) -> None:
    # Iterative DFS so long dependency chains can't hit the recursion limit.
    if state.get(root) == _BLACK:
        return

    state[root] = _GRAY
    stack: List[Tuple[str, Iterator[str]]] = [(root, iter(recipes[root].dependencies))]

    while stack:
        name, deps = stack[-1]
        dep = next(deps, None)

        if dep is None:
            stack.pop()
            state[name] = _BLACK
            order.append(name)
            continue

        seen = state.get(dep)
        if seen == _BLACK:
            continue
        if seen == _GRAY:
            path = [n for n, _ in stack]
            raise CyclicDependencyError(cycle=path[path.index(dep):] + [dep])
        if dep not in recipes:
            raise unknown_recipe(recipes, dep)

        state[dep] = _GRAY
        stack.append((dep, iter(recipes[dep].dependencies)))
