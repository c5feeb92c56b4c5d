from __future__ import annotations

import re
from typing import Iterator, Mapping


# `{{{{` is an escaped literal `{{`; it is matched first so it never opens a placeholder.
_TOKEN_RE = re.compile(r"\{\{\{\{|\{\{\s*(?P<key>[A-Za-z_][A-Za-z0-9_-]*)\s*\}\}")


def placeholders(template: str) -> Iterator[str]:
    """Yield every placeholder name referenced by `template`, in order."""
    for match in _TOKEN_RE.finditer(template):
        key = match.group("key")
        if key is not None:
            yield key


def render(template: str, variables: Mapping[str, str]) -> str:
    """
    Substitute `{{ name }}` placeholders with values from `variables`.

    Pure string substitution; nothing is evaluated. Names missing from
    `variables` raise KeyError, callers validate placeholders up front.
    """

    def _replace(match: re.Match[str]) -> str:
        key = match.group("key")
        if key is None:
            return "{{"
        return str(variables[key])

    return _TOKEN_RE.sub(_replace, template)
