"""
Variable substitution for step arguments.

Two rules apply to string values:

- A string that, once trimmed, is exactly one placeholder (``"{{name}}"``)
  is replaced by the bound value itself, keeping its type. This lets a step
  forward a previous step's structured output untouched.
- Any other string has each embedded ``{{name}}`` replaced by the value's
  text form: strings verbatim, ``None``/booleans/numbers as JSON literals,
  lists and dicts as compact JSON.

Placeholders without a binding are left as they are. Lists and dicts are
walked recursively; other values pass through.
"""

import json
import re
from typing import Any, Mapping

from skillchain.errors import InvalidConfigError

PLACEHOLDER_PATTERN = re.compile(r"\{\{([^{}]+)\}\}")


def format_variable(value: Any) -> str:
    """
    Text form of a variable for string interpolation.

    Raises:
        InvalidConfigError: If a composite value cannot be serialized
    """
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "true" if value else "false"
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise InvalidConfigError(f"Failed to serialize value: {e}") from e


def _whole_placeholder(text: str):
    """Variable name if text is exactly one placeholder, else None"""
    trimmed = text.strip()
    if not (trimmed.startswith("{{") and trimmed.endswith("}}")):
        return None
    inner = trimmed[2:-2]
    if "{{" in inner or "}}" in inner:
        return None
    return inner.strip()


def substitute_string(text: str, variables: Mapping[str, Any]) -> Any:
    name = _whole_placeholder(text)
    if name is not None and name in variables:
        return variables[name]

    def replace(match):
        key = match.group(1)
        if key not in variables:
            return match.group(0)
        return format_variable(variables[key])

    return PLACEHOLDER_PATTERN.sub(replace, text)


def substitute_variables(value: Any, variables: Mapping[str, Any]) -> Any:
    """
    Resolve placeholders in an argument tree.

    Args:
        value: Argument tree (dicts, lists, scalars)
        variables: Flat name -> value bindings

    Returns:
        A new tree; the input is not modified

    Raises:
        InvalidConfigError: If an interpolated value cannot be serialized
    """
    if isinstance(value, str):
        return substitute_string(value, variables)
    if isinstance(value, dict):
        return {k: substitute_variables(v, variables) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [substitute_variables(v, variables) for v in value]
    return value


def find_placeholders(value: Any) -> set:
    """Names of every placeholder referenced anywhere in an argument tree"""
    names = set()
    if isinstance(value, str):
        whole = _whole_placeholder(value)
        if whole is not None:
            names.add(whole)
        else:
            names.update(m.group(1) for m in PLACEHOLDER_PATTERN.finditer(value))
    elif isinstance(value, dict):
        for v in value.values():
            names |= find_placeholders(v)
    elif isinstance(value, (list, tuple)):
        for v in value:
            names |= find_placeholders(v)
    return names
