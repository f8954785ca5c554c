"""
Tests for the formula evaluator

Covers parsing, reference resolution, missing data, division by zero,
rounding and the catalog helpers (validate, rename).
"""
import math
import pytest
from datetime import date

from services.metric_engine.formula import (
    MAX_OPERATORS,
    FormulaSyntaxError,
    UnknownMetricReference,
    evaluate,
    formula_references,
    parse_formula,
    rename_reference,
    round_value,
    validate_formula,
)
from services.metric_engine.models import CompositeDataPoint, MetricDefinition, MetricInputType
from services.metric_engine.registry import MetricRegistry

BMI = "[Weight] / (([Height]/100) * ([Height]/100))"


@pytest.fixture
def registry():
    return MetricRegistry([
        MetricDefinition(id="m-weight", name="Weight", unit="kg"),
        MetricDefinition(id="m-height", name="Height", unit="cm"),
        MetricDefinition(id="m-bmi", name="BMI", input_type=MetricInputType.CALCULATED, formula=BMI),
    ])


class TestEvaluate:
    """Formula evaluation against plain mappings"""

    def test_bmi_70kg_175cm(self):
        """70 / 1.75² = 22.857... rounds to 22.86"""
        assert evaluate(BMI, {"Weight": 70, "Height": 175}) == 22.86

    def test_bmi_88kg_192cm(self):
        assert evaluate(BMI, {"Weight": 88, "Height": 192}) == 23.87

    def test_operator_precedence(self):
        assert evaluate("2 + 3 * 4", {}) == 14.0
        assert evaluate("(2 + 3) * 4", {}) == 20.0
        assert evaluate("10 - 4 - 3", {}) == 3.0
        assert evaluate("24 / 4 / 2", {}) == 3.0

    def test_unary_sign(self):
        assert evaluate("-[A] + 3", {"A": 1}) == 2.0
        assert evaluate("+[A] * -2", {"A": 4}) == -8.0

    def test_decimal_literals(self):
        assert evaluate("[A] * 0.5", {"A": 7}) == 3.5
        assert evaluate("[A] * .5", {"A": 7}) == 3.5

    def test_whitespace_is_ignored(self):
        assert evaluate("  [A]\t*\n2 ", {"A": 3}) == 6.0


class TestMissingData:
    """Any unresolved reference makes the whole result None (never 0)"""

    def test_missing_reference(self):
        assert evaluate(BMI, {"Height": 175}) is None

    def test_none_value(self):
        assert evaluate(BMI, {"Weight": None, "Height": 175}) is None

    def test_numeric_string_is_coerced(self):
        """Survey answers may arrive as text"""
        assert evaluate("[Sleep] * 2", {"Sleep": "7.5"}) == 15.0

    def test_non_numeric_string(self):
        assert evaluate("[Mood] + 1", {"Mood": "tired"}) is None

    def test_boolean_is_not_a_number(self):
        assert evaluate("[A] + 1", {"A": True}) is None

    def test_empty_formula(self):
        assert evaluate("", {"A": 1}) is None
        assert evaluate(None, {"A": 1}) is None


class TestFailureModes:
    """Failures come back as None instead of raising"""

    def test_division_by_zero_literal(self):
        assert evaluate("[A] / 0", {"A": 5}) is None

    def test_division_by_zero_expression(self):
        assert evaluate("[A] / ([B] - [B])", {"A": 5, "B": 2}) is None

    def test_non_finite_result(self):
        assert evaluate("[A] * [A]", {"A": 1e200}) is None

    @pytest.mark.parametrize("formula", [
        "[Weight] / (",
        "[Weight",
        "[Weight] / ([Height]",
        "2 ^ 3",
        "[A] [B]",
        "* 3",
        "3 +",
        "()",
        "1..2",
        "[A] ** 2",
        "[A]²",
    ])
    def test_malformed_formula(self, formula):
        assert evaluate(formula, {"A": 1, "B": 2, "Weight": 70, "Height": 175}) is None

    def test_code_is_never_executed(self):
        assert evaluate("__import__('os').getcwd()", {}) is None


class TestRegistryResolution:
    """With a registry, names resolve to metric ids"""

    def test_resolves_names_to_ids(self, registry):
        point = CompositeDataPoint(date=date(2024, 3, 1), values={"m-weight": 70, "m-height": 175})
        assert evaluate(BMI, point, registry) == 22.86

    def test_name_keys_are_not_used_with_registry(self, registry):
        assert evaluate(BMI, {"Weight": 70, "Height": 175}, registry) is None

    def test_unknown_metric_name(self, registry):
        assert evaluate("[Grip Strength] * 2", {"m-weight": 70}, registry) is None


class TestPurity:
    """Evaluation does not mutate input and is repeatable"""

    def test_input_not_mutated(self):
        data = {"Weight": 70, "Height": 175}
        evaluate(BMI, data)
        assert data == {"Weight": 70, "Height": 175}

    def test_repeatable(self):
        data = {"Weight": 88, "Height": 192}
        results = {evaluate(BMI, data) for _ in range(5)}
        assert results == {23.87}

    def test_parsed_tree_is_cached(self):
        assert parse_formula(BMI) is parse_formula(BMI)


class TestRounding:
    """Half away from zero on the exact binary value"""

    def test_half_rounds_up(self):
        assert evaluate("[A] / 8", {"A": 1}) == 0.13  # 0.125 exactly

    def test_binary_representation_wins(self):
        """1.005 is stored as 1.00499..., so it rounds down"""
        assert round_value(1.005) == 1.0

    def test_negative_half_rounds_away_from_zero(self):
        assert round_value(-0.125) == -0.13

    def test_custom_decimals(self):
        assert evaluate("[A] / 3", {"A": 1}, decimals=4) == 0.3333

    def test_large_magnitudes(self):
        assert round_value(1e27) == 1e27
        assert round_value(-1.7e308) == -1.7e308

    def test_non_finite_unchanged(self):
        assert round_value(float("inf")) == float("inf")
        assert math.isnan(round_value(float("nan")))


class TestLimits:
    """Large or deeply nested input gives None, never an exception"""

    def test_result_beyond_28_digits(self):
        assert evaluate("[A] * 1000000000000000000000000000", {"A": 1}) == 1e27

    def test_deep_parentheses(self):
        assert evaluate("(" * 2000 + "1" + ")" * 2000, {}) is None

    def test_long_unary_chain(self):
        assert evaluate("-" * 2000 + "1", {}) is None

    def test_long_operator_chain(self):
        assert evaluate(" + ".join(["[A]"] * 2000), {"A": 1}) is None

    def test_moderate_nesting_still_evaluates(self):
        assert evaluate("(" * 50 + "[A]" + ")" * 50, {"A": 2}) == 2
        assert evaluate(" + ".join(["1"] * (MAX_OPERATORS + 1)), {}) == MAX_OPERATORS + 1

    def test_validate_rejects_deep_nesting(self):
        with pytest.raises(FormulaSyntaxError):
            validate_formula("(" * 2000 + "[Weight]" + ")" * 2000)


class TestValidateFormula:
    """Strict validation used by the metric catalog"""

    def test_returns_references(self, registry):
        assert validate_formula(BMI, registry) == ["Weight", "Height"]

    def test_syntax_error(self):
        with pytest.raises(FormulaSyntaxError):
            validate_formula("[Weight] / (")

    def test_syntax_error_reports_position(self):
        with pytest.raises(FormulaSyntaxError) as exc_info:
            validate_formula("[A] $ 2")
        assert exc_info.value.position == 4

    def test_unknown_reference(self, registry):
        with pytest.raises(UnknownMetricReference) as exc_info:
            validate_formula("[Weight] / [Waist]", registry)
        assert exc_info.value.name == "Waist"

    def test_no_registry_accepts_any_name(self):
        assert validate_formula("[Anything] + 1") == ["Anything"]

    def test_references_deduplicated_in_order(self):
        assert formula_references("[B] + [A] * [B]") == ["B", "A"]


class TestRenameReference:
    """Renames rewrite only exact references"""

    def test_rename(self):
        assert rename_reference(BMI, "Weight", "Body Weight") == (
            "[Body Weight] / (([Height]/100) * ([Height]/100))"
        )

    def test_rename_all_occurrences(self):
        assert rename_reference(BMI, "Height", "Stature") == (
            "[Weight] / (([Stature]/100) * ([Stature]/100))"
        )

    def test_similar_names_untouched(self):
        assert rename_reference("[Weight Max] - [Weight]", "Weight", "Mass") == "[Weight Max] - [Mass]"

    def test_unrelated_formula_unchanged(self):
        assert rename_reference("[A] + 1", "B", "C") == "[A] + 1"
