"""Tests for the condition and transform expression catalog."""

import pytest

from prompt_workflows.engine.exceptions import ExpressionEvaluationError
from prompt_workflows.engine.expressions import (
    evaluate_condition,
    evaluate_transform,
    is_supported_condition,
    is_supported_transform,
    normalize_expression,
)


class TestConditions:
    @pytest.mark.parametrize(
        "expr,variables,outputs,expected",
        [
            ("true", {}, {}, True),
            ("false", {"a": 1}, {}, False),
            ("vars.length > 0", {"a": 1}, {}, True),
            ("vars.length > 0", {}, {}, False),
            ("outputs.length > 0", {}, {"n1": "x"}, True),
            ("outputs.success", {}, {"success": True}, True),
            ("outputs.success", {}, {}, False),
        ],
    )
    def test_exact_catalog(self, expr, variables, outputs, expected):
        result = evaluate_condition(expr, variables, outputs)
        assert result.value is expected
        assert result.supported

    @pytest.mark.parametrize(
        "expr,expected",
        [
            ("vars.count > 3", True),
            ("vars.count >= 5", True),
            ("vars.count < 5", False),
            ("vars.count == 5", True),
            ("vars.count != 5", False),
            ("vars.score <= 0.5", True),
            ("vars.text.length > 4", True),
            ("vars.items.length == 2", True),
            ("outputs.summary.length < 3", False),
        ],
    )
    def test_comparisons(self, expr, expected):
        variables = {"count": 5, "score": "0.25", "text": "hello", "items": ["a", "b"]}
        outputs = {"summary": "long enough"}
        assert evaluate_condition(expr, variables, outputs).value is expected

    def test_truthiness(self):
        variables = {"flag": "yes", "empty": ""}
        assert evaluate_condition("vars.flag", variables, {}).value is True
        assert evaluate_condition("!vars.empty", variables, {}).value is True
        assert evaluate_condition("vars.missing", variables, {}).value is False
        assert evaluate_condition("outputs.n1", {}, {"n1": "text"}).value is True

    def test_bare_length_counts_bindings(self):
        assert evaluate_condition("vars.length", {"a": 1}, {}).value is True
        assert evaluate_condition("vars.length", {}, {}).value is False
        assert evaluate_condition("!outputs.length", {}, {}).value is True
        assert evaluate_condition("vars.length", {"length": 0}, {}).value is True

    def test_hyphenated_node_ids(self):
        outputs = {"node-1": "done", "loop-2": ["a", "b", "c"]}
        assert evaluate_condition("outputs.node-1", {}, outputs).value is True
        assert evaluate_condition("!outputs.node-1", {}, outputs).value is False
        assert evaluate_condition("outputs.loop-2.length >= 3", {}, outputs).value is True
        assert is_supported_condition("outputs.node-1 > 0")

    def test_missing_operand_is_false_with_note(self):
        result = evaluate_condition("vars.count > 1", {}, {})
        assert result.value is False
        assert result.supported
        assert "not bound" in result.notes[0]

    def test_non_numeric_operand_is_false_with_note(self):
        result = evaluate_condition("vars.count > 1", {"count": "many"}, {})
        assert result.value is False
        assert "not numeric" in result.notes[0]

    def test_legacy_return_form(self):
        assert normalize_expression("  return vars.count > 3;  ") == "vars.count > 3"
        assert evaluate_condition("return vars.count > 3;", {"count": 4}, {}).value is True

    @pytest.mark.parametrize(
        "expr",
        ["__import__('os').system('rm -rf /')", "vars.a && vars.b", "Math.random() > 0.5"],
    )
    def test_unsupported_is_false_with_note(self, expr):
        result = evaluate_condition(expr, {"a": True, "b": True}, {})
        assert result.value is False
        assert result.supported is False
        assert "Unsupported condition" in result.notes[0]
        assert not is_supported_condition(expr)

    def test_supported_condition_check(self):
        assert is_supported_condition("vars.items.length >= 1")
        assert is_supported_condition("!outputs.n2")


class TestTransforms:
    @pytest.mark.parametrize(
        "expr,value,expected",
        [
            ("uppercase", "abc", "ABC"),
            ("lowercase", ["A", "B"], ["a", "b"]),
            ("trim", "  padded  ", "padded"),
            ("collapseWhitespace", "a \n  b\t c", "a b c"),
            ("length", "four", 4),
            ("length", [1, 2, 3], 3),
            ("length", None, 0),
            ("toJson", {"k": [1, 2]}, '{"k": [1, 2]}'),
            ("fromJson", '{"k": [1, 2]}', {"k": [1, 2]}),
            ("splitOnComma", "a, b,,c ", ["a", "b", "c"]),
        ],
    )
    def test_catalog(self, expr, value, expected):
        result = evaluate_transform(expr, value, {}, {})
        assert result.value == expected
        assert result.supported

    def test_from_json_invalid_raises(self):
        with pytest.raises(ExpressionEvaluationError, match="not valid JSON"):
            evaluate_transform("fromJson", "{broken", {}, {})

    def test_unsupported_passes_value_through(self):
        result = evaluate_transform("value.split('').reverse()", "abc", {}, {})
        assert result.value == "abc"
        assert result.supported is False
        assert "passed through" in result.notes[0]
        assert not is_supported_transform("value.split('').reverse()")
        assert is_supported_transform("return uppercase;")
