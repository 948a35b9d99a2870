"""
Safe expression evaluation for Condition and Transform nodes.

Expressions are matched against a closed, versioned catalog. Nothing a user
writes is ever executed: an expression either names a catalog entry or it is
unsupported.

Unsupported expressions are NOT errors. A condition evaluates to ``False`` and
a transform passes its input through unchanged; in both cases the result
carries a note that ends up on the node's trace entry.

Condition catalog:

    Exact:      true | false | vars.length > 0 | outputs.length > 0 | outputs.success
    Truthiness: vars.NAME | !vars.NAME | outputs.NODE | !outputs.NODE
    Numeric:    vars.NAME OP N | vars.NAME.length OP N
                outputs.NODE OP N | outputs.NODE.length OP N
                vars.length OP N | outputs.length OP N   (number of bindings)
    NAME and NODE may contain ``-`` (node ids such as ``node-1``). A bare
    ``vars.length`` or ``outputs.length`` is true when the namespace has any
    binding, matching ``vars.length > 0``; it never reads a variable named
    ``length``.
    with OP in ==, !=, >, >=, <, <= and N an integer or decimal literal.

Transform catalog:

    uppercase, lowercase, trim, collapseWhitespace   (element-wise on lists)
    length, toJson, fromJson, splitOnComma

A leading ``return`` and a trailing ``;`` are tolerated so that expressions
saved by older editors (``return vars.count > 3;``) still resolve.
"""

import json
import logging
import operator
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from .exceptions import ExpressionEvaluationError
from .interpolation import to_text

logger = logging.getLogger(__name__)

CATALOG_VERSION = "1"


@dataclass(frozen=True)
class ExpressionResult:
    """Outcome of evaluating a catalog expression."""

    value: Any
    supported: bool = True
    notes: tuple[str, ...] = field(default_factory=tuple)


# ===========================================================================
# Conditions
# ===========================================================================

ConditionFn = Callable[[Mapping[str, Any], Mapping[str, Any]], bool]

EXACT_CONDITIONS: Mapping[str, ConditionFn] = MappingProxyType(
    {
        "true": lambda variables, outputs: True,
        "false": lambda variables, outputs: False,
        "vars.length > 0": lambda variables, outputs: len(variables) > 0,
        "outputs.length > 0": lambda variables, outputs: len(outputs) > 0,
        "outputs.success": lambda variables, outputs: bool(outputs.get("success")),
    }
)

COMPARISON_OPERATORS: Mapping[str, Callable[[Any, Any], bool]] = MappingProxyType(
    {
        "==": operator.eq,
        "!=": operator.ne,
        ">=": operator.ge,
        "<=": operator.le,
        ">": operator.gt,
        "<": operator.lt,
    }
)

_TRUTHINESS = re.compile(r"^(?P<neg>!)?\s*(?P<ns>vars|outputs)\.(?P<name>[\w-]+)$")
_COMPARISON = re.compile(
    r"^(?P<ns>vars|outputs)\.(?P<name>[\w-]+)(?P<length>\.length)?"
    r"\s*(?P<op>==|!=|>=|<=|>|<)\s*(?P<number>-?\d+(?:\.\d+)?)$"
)


def normalize_expression(expr: str) -> str:
    """Strip whitespace, a leading ``return`` and a trailing ``;``."""
    text = expr.strip()
    if text.startswith("return "):
        text = text[len("return ") :].strip()
    if text.endswith(";"):
        text = text[:-1].strip()
    return text


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _compare(
    match: re.Match[str], variables: Mapping[str, Any], outputs: Mapping[str, Any], expr: str
) -> ExpressionResult:
    namespace = variables if match["ns"] == "vars" else outputs
    name = match["name"]
    limit = float(match["number"])
    compare = COMPARISON_OPERATORS[match["op"]]

    if name == "length" and not match["length"]:
        return ExpressionResult(compare(len(namespace), limit))

    if name not in namespace:
        return ExpressionResult(False, notes=(f"{match['ns']}.{name} is not bound in {expr!r}",))

    value = namespace[name]
    if match["length"]:
        if not isinstance(value, (str, list, tuple, dict)):
            return ExpressionResult(
                False,
                notes=(f"{match['ns']}.{name} has no length ({type(value).__name__})",),
            )
        return ExpressionResult(compare(len(value), limit))

    number = _as_number(value)
    if number is None:
        return ExpressionResult(
            False, notes=(f"{match['ns']}.{name} is not numeric: {value!r}",)
        )
    return ExpressionResult(compare(number, limit))


def evaluate_condition(
    expr: str, variables: Mapping[str, Any], outputs: Mapping[str, Any]
) -> ExpressionResult:
    """
    Evaluate a condition expression from the catalog.

    Returns:
        ExpressionResult whose value is a bool. Unsupported expressions yield
        ``False`` with ``supported=False`` and a note.
    """
    text = normalize_expression(expr)

    exact = EXACT_CONDITIONS.get(text)
    if exact is not None:
        return ExpressionResult(bool(exact(variables, outputs)))

    comparison = _COMPARISON.match(text)
    if comparison:
        return _compare(comparison, variables, outputs, text)

    truthiness = _TRUTHINESS.match(text)
    if truthiness:
        namespace = variables if truthiness["ns"] == "vars" else outputs
        name = truthiness["name"]
        value = len(namespace) > 0 if name == "length" else bool(namespace.get(name))
        return ExpressionResult(not value if truthiness["neg"] else value)

    note = f"Unsupported condition expression {expr!r}; evaluated as false"
    logger.warning(note)
    return ExpressionResult(False, supported=False, notes=(note,))


# ===========================================================================
# Transforms
# ===========================================================================


def _text_transform(fn: Callable[[str], str]) -> Callable[[Any], Any]:
    def apply(value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return [fn(to_text(item)) for item in value]
        return fn(to_text(value))

    return apply


def _length(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, (str, list, tuple, dict)):
        return len(value)
    return len(to_text(value))


def _from_json(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise ExpressionEvaluationError(f"fromJson: input is not valid JSON: {e}")


def _split_on_comma(value: Any) -> list[str]:
    return [part.strip() for part in to_text(value).split(",") if part.strip()]


TRANSFORMS: Mapping[str, Callable[[Any], Any]] = MappingProxyType(
    {
        "uppercase": _text_transform(str.upper),
        "lowercase": _text_transform(str.lower),
        "trim": _text_transform(str.strip),
        "collapseWhitespace": _text_transform(lambda s: " ".join(s.split())),
        "length": _length,
        "toJson": lambda value: json.dumps(value, ensure_ascii=False, default=str),
        "fromJson": _from_json,
        "splitOnComma": _split_on_comma,
    }
)


def evaluate_transform(
    expr: str,
    value: Any,
    variables: Mapping[str, Any],
    outputs: Mapping[str, Any],
) -> ExpressionResult:
    """
    Apply a catalog transform to ``value``.

    ``variables`` and ``outputs`` are accepted for parity with conditions;
    no transform in the current catalog reads them.

    Returns:
        ExpressionResult with the transformed value. Unsupported expressions
        return the input unchanged with ``supported=False`` and a note.

    Raises:
        ExpressionEvaluationError: If a supported transform cannot process
            its input (fromJson on malformed JSON)
    """
    text = normalize_expression(expr)
    transform = TRANSFORMS.get(text)
    if transform is None:
        note = f"Unsupported transform expression {expr!r}; input passed through unchanged"
        logger.warning(note)
        return ExpressionResult(value, supported=False, notes=(note,))
    return ExpressionResult(transform(value))


def is_supported_condition(expr: str) -> bool:
    text = normalize_expression(expr)
    return (
        text in EXACT_CONDITIONS
        or _COMPARISON.match(text) is not None
        or _TRUTHINESS.match(text) is not None
    )


def is_supported_transform(expr: str) -> bool:
    return normalize_expression(expr) in TRANSFORMS


__all__ = [
    "CATALOG_VERSION",
    "ExpressionResult",
    "EXACT_CONDITIONS",
    "TRANSFORMS",
    "normalize_expression",
    "evaluate_condition",
    "evaluate_transform",
    "is_supported_condition",
    "is_supported_transform",
]
