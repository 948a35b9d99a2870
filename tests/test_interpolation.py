"""Tests for {{placeholder}} interpolation and interpolatable numeric fields."""

import pytest

from prompt_workflows.engine.interpolation import (
    find_placeholders,
    has_interpolation,
    interpolatable_numeric_validator,
    interpolate,
    resolve_interpolatable_numeric,
    to_text,
)


class TestInterpolate:
    def test_bound_placeholder_is_replaced(self):
        assert interpolate("Hello {{name}}", {"name": "World"}) == "Hello World"

    def test_unbound_placeholder_is_kept_verbatim(self):
        assert interpolate("Hello {{name}}", {}) == "Hello {{name}}"

    def test_inner_whitespace_is_allowed(self):
        assert interpolate("Hi {{ name }}!", {"name": "Ada"}) == "Hi Ada!"

    def test_template_without_placeholders_is_unchanged(self):
        text = "No placeholders here { name } {{ }}"
        assert interpolate(text, {"name": "x"}) == text

    def test_repeated_placeholder(self):
        assert interpolate("{{a}}-{{a}}", {"a": 1}) == "1-1"

    def test_mixed_bound_and_unbound(self):
        assert interpolate("{{a}} and {{b}}", {"a": "x"}) == "x and {{b}}"

    @pytest.mark.parametrize(
        "variables",
        [
            {"name": "World"},
            {},
            {"name": "", "other": 3},
        ],
    )
    def test_idempotent_when_values_have_no_placeholders(self, variables):
        once = interpolate("Hello {{name}} / {{missing}}", variables)
        assert interpolate(once, variables) == once

    def test_value_text_forms(self):
        variables = {"flag": True, "off": False, "none": None, "items": ["a", 1], "n": 2.5}
        result = interpolate("{{flag}} {{off}} [{{none}}] {{items}} {{n}}", variables)
        assert result == 'true false [] ["a", 1] 2.5'


class TestToText:
    def test_dict_rendered_as_json(self):
        assert to_text({"k": "v"}) == '{"k": "v"}'

    def test_non_ascii_kept(self):
        assert to_text(["café"]) == '["café"]'


class TestFindPlaceholders:
    def test_order_and_uniqueness(self):
        assert find_placeholders("{{b}} {{a}} {{b}}") == ["b", "a"]

    def test_walks_nested_structures(self):
        value = {"template": "Use {{tone}}", "extra": ["{{topic}}", {"deep": "{{tone}}"}], "n": 3}
        assert find_placeholders(value) == ["tone", "topic"]

    def test_non_string_scalars_ignored(self):
        assert find_placeholders(42) == []


class TestNumericInterpolation:
    validator = staticmethod(interpolatable_numeric_validator(float, ge=0.0, le=2.0))

    def test_accepts_numbers_and_numeric_strings(self):
        assert self.validator(None, 0.5) == 0.5
        assert self.validator(None, "1.5") == 1.5

    def test_keeps_placeholder_strings(self):
        assert self.validator(None, "{{temperature}}") == "{{temperature}}"
        assert has_interpolation("{{temperature}}")

    def test_rejects_out_of_range(self):
        with pytest.raises(ValueError, match="must be <= 2.0"):
            self.validator(None, 3.0)

    def test_rejects_non_numeric_text(self):
        with pytest.raises(ValueError, match="valid float"):
            self.validator(None, "warm")

    def test_rejects_bool(self):
        with pytest.raises(ValueError):
            self.validator(None, True)

    def test_resolve_placeholder(self):
        value = resolve_interpolatable_numeric(
            "{{t}}", float, "temperature", {"t": "0.3"}, ge=0.0, le=2.0
        )
        assert value == pytest.approx(0.3)

    def test_resolve_unbound_placeholder_fails(self):
        with pytest.raises(ValueError, match="unresolved variable"):
            resolve_interpolatable_numeric("{{t}}", float, "temperature", {})

    def test_resolve_checks_bounds(self):
        with pytest.raises(ValueError, match="max_tokens"):
            resolve_interpolatable_numeric("{{n}}", int, "max_tokens", {"n": 0}, ge=1)
