"""
Template interpolation for prompt text and numeric node settings.

Templates reference variables with ``{{name}}`` placeholders. Interpolation is
deliberately forgiving: a placeholder whose name is not bound is left in the
output verbatim, so ``interpolate("Hello {{name}}", {})`` returns the template
unchanged. ``validate`` reports such placeholders as warnings before a run.

Numeric node settings (temperature, max_tokens) follow a two-phase pattern:

1. Load time: accept ``float | str``; strings must be numeric or contain a
   placeholder (``interpolatable_numeric_validator``).
2. Run time: interpolate against the run's variables and coerce to the strict
   numeric type with constraints (``resolve_interpolatable_numeric``).

Example:
    ```python
    class PromptConfig(NodeConfig):
        temperature: float | str = 0.7

        _validate_temperature = field_validator("temperature", mode="before")(
            interpolatable_numeric_validator(float, ge=0.0, le=2.0)
        )
    ```
"""

import json
import re
from collections.abc import Callable, Mapping
from typing import Any, overload

# {{name}} with optional inner whitespace; name is a word identifier
PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def has_interpolation(value: Any) -> bool:
    """
    Check if a value contains ``{{...}}`` placeholders.

    Examples:
        >>> has_interpolation("{{temperature}}")
        True
        >>> has_interpolation("0.7")
        False
    """
    return isinstance(value, str) and bool(PLACEHOLDER_PATTERN.search(value))


def to_text(value: Any) -> str:
    """Render a context value the way it appears inside a prompt."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def interpolate(template: str, variables: Mapping[str, Any]) -> str:
    """
    Substitute ``{{name}}`` placeholders with bound variable values.

    Unbound placeholders are kept verbatim. Templates without placeholders are
    returned unchanged.

    Args:
        template: Template text
        variables: Variable bindings for this scope

    Returns:
        Interpolated text

    Examples:
        >>> interpolate("Hello {{name}}", {"name": "World"})
        'Hello World'
        >>> interpolate("Hello {{name}}", {})
        'Hello {{name}}'
    """

    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in variables:
            return to_text(variables[name])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(replace, template)


def find_placeholders(value: Any) -> list[str]:
    """
    Collect placeholder names referenced anywhere inside a value.

    Walks strings, lists and dict values. Names are returned once each, in
    first-appearance order.
    """
    names: list[str] = []

    def walk(item: Any) -> None:
        if isinstance(item, str):
            for name in PLACEHOLDER_PATTERN.findall(item):
                if name not in names:
                    names.append(name)
        elif isinstance(item, Mapping):
            for nested in item.values():
                walk(nested)
        elif isinstance(item, (list, tuple)):
            for nested in item:
                walk(nested)

    walk(value)
    return names


def _check_bounds(
    num_value: int | float,
    ge: int | float | None,
    le: int | float | None,
) -> None:
    if ge is not None and num_value < ge:
        raise ValueError(f"must be >= {ge}, got {num_value}")
    if le is not None and num_value > le:
        raise ValueError(f"must be <= {le}, got {num_value}")


def interpolatable_numeric_validator(
    numeric_type: type[int] | type[float],
    *,
    ge: int | float | None = None,
    le: int | float | None = None,
) -> Callable[[type[Any], int | float | str | None], int | float | str | None]:
    """
    Create a Pydantic ``mode="before"`` validator for numeric fields that may
    hold a placeholder.

    Allows None, numbers (bounds checked), numeric strings (converted) and
    strings containing ``{{...}}`` (kept for run-time resolution).

    Raises:
        ValueError: If the value is neither numeric nor a placeholder string
    """

    def validator(cls: type[Any], v: int | float | str | None) -> int | float | str | None:
        if v is None:
            return None

        if isinstance(v, str) and has_interpolation(v):
            return v

        if isinstance(v, bool) or not isinstance(v, (int, float, str)):
            raise ValueError(
                f"must be {numeric_type.__name__}, numeric string, or interpolation, "
                f"got {type(v).__name__}"
            )

        try:
            num_value = numeric_type(v)
        except (TypeError, ValueError):
            raise ValueError(
                f"must be a valid {numeric_type.__name__} or an interpolation string "
                f"like '{{{{temperature}}}}'. Got: {v!r}"
            )
        _check_bounds(num_value, ge, le)
        return num_value

    return validator


@overload
def resolve_interpolatable_numeric(
    value: int | str,
    numeric_type: type[int],
    field_name: str,
    variables: Mapping[str, Any],
    *,
    ge: int | float | None = None,
    le: int | float | None = None,
) -> int: ...


@overload
def resolve_interpolatable_numeric(
    value: float | str,
    numeric_type: type[float],
    field_name: str,
    variables: Mapping[str, Any],
    *,
    ge: int | float | None = None,
    le: int | float | None = None,
) -> float: ...


def resolve_interpolatable_numeric(
    value: int | float | str,
    numeric_type: type[int] | type[float],
    field_name: str,
    variables: Mapping[str, Any],
    *,
    ge: int | float | None = None,
    le: int | float | None = None,
) -> int | float:
    """
    Resolve a numeric field at run time.

    Strings are interpolated against ``variables`` first, then converted.

    Raises:
        ValueError: If a placeholder is unbound or the result violates constraints
    """
    if isinstance(value, str):
        resolved = interpolate(value, variables)
        if has_interpolation(resolved):
            raise ValueError(f"{field_name}: unresolved variable in {value!r}")
        try:
            num_value = numeric_type(resolved.strip())
        except ValueError:
            raise ValueError(f"{field_name}: {resolved!r} is not a valid {numeric_type.__name__}")
    else:
        num_value = numeric_type(value)

    try:
        _check_bounds(num_value, ge, le)
    except ValueError as e:
        raise ValueError(f"{field_name}: {e}")
    return num_value


__all__ = [
    "PLACEHOLDER_PATTERN",
    "has_interpolation",
    "to_text",
    "interpolate",
    "find_placeholders",
    "interpolatable_numeric_validator",
    "resolve_interpolatable_numeric",
]
