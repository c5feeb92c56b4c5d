from .dsl import recipe, recipes, sh, param
from .parser import parse, load_recipe_file, find_recipe_file
from .dag import resolve
from .runner import execute, RunOptions
from .model import Recipe, RecipeSet, ExecutionPlan, Request, Parameter, Line

__version__ = "0.1.0"

__all__ = [
    "recipe", "recipes", "sh", "param",
    "parse", "load_recipe_file", "find_recipe_file",
    "resolve", "execute", "RunOptions",
    "Recipe", "RecipeSet", "ExecutionPlan", "Request", "Parameter", "Line",
]
