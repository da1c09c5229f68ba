"""Tests for constant folding and unused-field removal."""

from mjolnir.codegen.diagnostics import ConversionDiagnostics
from mjolnir.codegen.optimizer import optimize
from mjolnir.frontend.parse import parse
from mjolnir.ir.model import Binary, Literal

CALC = """\
pragma solidity 0.8.19;
contract Calc {
    uint result;
    uint unused;
    function compute() public {
        result = 2 * 3 + 1;
    }
}
"""


def run(source):
    diagnostics = ConversionDiagnostics()
    model = parse(source)
    return model, optimize(model, diagnostics), diagnostics


class TestOptimize:
    def test_constant_folding(self):
        """Given nested literal arithmetic, it folds to one literal."""
        _, optimized, diagnostics = run(CALC)

        assert optimized.function_named("compute").body[0].value == Literal("7", "number")
        assert "folded 2 constant expression(s)" in [n.message for n in diagnostics.optimizations]

    def test_unused_private_field_is_removed(self):
        """Given a private field nothing references, it is dropped."""
        _, optimized, diagnostics = run(CALC)

        assert optimized.field_names == ["result"]
        assert "removed unused private field 'unused'" in [n.message for n in diagnostics.optimizations]

    def test_public_field_is_kept(self):
        """Given an unreferenced public field, it stays as part of the interface."""
        _, optimized, _ = run(CALC.replace("uint unused;", "uint public unused;"))

        assert optimized.field_names == ["result", "unused"]

    def test_input_model_is_untouched(self):
        """Given an optimisation run, the caller's model is unchanged."""
        model, _, _ = run(CALC)

        assert model.field_names == ["result", "unused"]
        assert isinstance(model.function_named("compute").body[0].value, Binary)

    def test_division_by_zero_is_not_folded(self):
        """Given `1 / 0`, the expression is left for the compiler to reject."""
        _, optimized, diagnostics = run(CALC.replace("2 * 3 + 1", "1 / 0"))

        assert isinstance(optimized.function_named("compute").body[0].value, Binary)
        assert not any(n.construct == "constant_folding" for n in diagnostics.optimizations)

    def test_negative_result_is_not_folded(self):
        """Given `1 - 2`, the underflowing result is not folded."""
        _, optimized, _ = run(CALC.replace("2 * 3 + 1", "1 - 2"))

        assert isinstance(optimized.function_named("compute").body[0].value, Binary)

    def test_boolean_folding(self):
        """Given literal comparisons and logic, booleans are folded."""
        source = """\
contract Flags {
    bool flag;
    function set() public {
        flag = 1 < 2 && !false;
    }
}
"""
        _, optimized, _ = run(source)

        assert optimized.function_named("set").body[0].value == Literal("true", "bool")
