"""Utilities for loading reusable prompt templates."""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Mapping

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"
_PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")


@lru_cache(maxsize=None)
def _read_template(name: str) -> str:
    return (PROMPTS_DIR / f"{name}.txt").read_text(encoding="utf-8")


def load_prompt(name: str, variables: Mapping[str, object] | None = None) -> str:
    """Return the rendered, stripped prompt ``name``.

    Every ``{{ placeholder }}`` in the template must be supplied; ``None``
    values render as an empty string.
    """
    template = _read_template(name)
    variables = variables or {}
    if not isinstance(variables, Mapping):
        raise TypeError("variables must be a mapping of placeholder -> value")

    missing = sorted({key for key in _PLACEHOLDER_PATTERN.findall(template) if key not in variables})
    if missing:
        raise KeyError(f"prompt {name!r} is missing values for: {', '.join(missing)}")

    def _replace(match: re.Match[str]) -> str:
        value = variables[match.group(1)]
        return "" if value is None else str(value)

    return _PLACEHOLDER_PATTERN.sub(_replace, template).strip()


__all__ = ["load_prompt", "PROMPTS_DIR"]
