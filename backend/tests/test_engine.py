"""Tests for the rule engine: selection, weighting, ordering and scoring."""

from mjolnir.analyzer.engine import EngineConfig, analyze, select_rules
from mjolnir.analyzer.models import Metrics, Severity
from mjolnir.analyzer.rules import RULES
from mjolnir.frontend.parse import parse


class TestSelectRules:
    def test_empty_selects_everything(self):
        """Given no selection, every registered rule runs."""
        assert select_rules([]) == list(RULES)
        assert select_rules(None) == list(RULES)

    def test_all_keyword(self):
        """Given "all", every registered rule runs."""
        assert select_rules(["all"]) == list(RULES)

    def test_registration_order_is_kept(self):
        """Given names out of order, registration order wins."""
        selected = select_rules(["floating_pragma", "reentrancy"])

        assert [rule.name for rule in selected] == ["reentrancy", "floating_pragma"]

    def test_unknown_rule_is_ignored(self):
        """Given an unknown name, it is dropped without error."""
        assert [rule.name for rule in select_rules(["reentrancy", "nope"])] == ["reentrancy"]


class TestAnalyze:
    def test_bank(self, solidity_bank):
        """Given the bank, reentrancy and a missing event are found and scored."""
        outcome = analyze(parse(solidity_bank))

        assert [(i.rule, i.severity, i.line) for i in outcome.issues] == [
            ("reentrancy", Severity.HIGH, 20),
            ("event_emission", Severity.LOW, 18),
        ]
        assert outcome.metrics == Metrics(performance=75, security=75, gas_efficiency=100, code_quality=95)
        assert outcome.score == 86

    def test_solidity_flipper(self, solidity_flipper):
        """Given the Solidity flipper, two low findings are ordered by line."""
        outcome = analyze(parse(solidity_flipper))

        assert [i.message for i in outcome.issues] == [
            "Floating pragma version (^0.8.0)",
            "Missing event emission after state change in 'flip'",
        ]
        assert outcome.metrics.code_quality == 90
        assert outcome.score == 98

    def test_ink_flipper(self, ink_flipper):
        """Given the ink! flipper, only the missing event is reported."""
        outcome = analyze(parse(ink_flipper))

        assert [(i.rule, i.line) for i in outcome.issues] == [("event_emission", 17)]
        assert outcome.score == 99

    def test_issue_carries_recommendation(self, solidity_bank):
        """Given a finding, its recommendation travels with the issue."""
        outcome = analyze(parse(solidity_bank))

        assert outcome.issues[0].recommendation.startswith("Apply checks-effects-interactions")

    def test_enabled_rules(self, solidity_bank):
        """Given one enabled rule, only its issues and penalties count."""
        outcome = analyze(parse(solidity_bank), EngineConfig(enabled_rules=["reentrancy"]))

        assert [i.rule for i in outcome.issues] == ["reentrancy"]
        assert outcome.metrics.code_quality == 100
        assert outcome.score == 88

    def test_enabled_rules_suppress_unbounded_storage(self, solidity_bank):
        """Given a bank that also keeps an unbounded array, gating on reentrancy drops the storage finding."""
        source = solidity_bank.replace(
            "    address public owner;\n",
            "    address public owner;\n    address[] public depositors;\n",
        )

        everything = analyze(parse(source))
        gated = analyze(parse(source), EngineConfig(enabled_rules=["reentrancy"]))

        assert {"reentrancy", "unbounded_storage"} <= {i.rule for i in everything.issues}
        assert everything.metrics.gas_efficiency < 100
        assert [i.rule for i in gated.issues] == ["reentrancy"]
        assert gated.metrics.gas_efficiency == 100

    def test_opaque_code_is_reported(self):
        """Given a function made only of assembly, the analysis is not silently clean."""
        outcome = analyze(parse("contract A { uint x; function f() public { assembly { mstore(0,1) } } }"))

        assert "assembly_usage" in [i.rule for i in outcome.issues]
        assert outcome.metrics.code_quality < 100

    def test_skipped_contract_lowers_code_quality(self):
        """Given a second contract that is not modelled, a low code quality issue is reported."""
        outcome = analyze(parse("contract A {\n    uint x;\n}\ncontract B {\n    uint y;\n}\n"))

        assert ("unmodelled_construct", Severity.LOW, 4) in [(i.rule, i.severity, i.line) for i in outcome.issues]
        assert outcome.metrics.code_quality < 100

    def test_category_weight(self, solidity_bank):
        """Given a zero category weight, that category stays at 100."""
        outcome = analyze(parse(solidity_bank), EngineConfig(custom_weights={"code_quality": 0}))

        assert outcome.metrics.code_quality == 100
        assert len(outcome.issues) == 2
        assert outcome.score == 88

    def test_rule_weight(self, solidity_bank):
        """Given a doubled rule weight, its penalty doubles in every category."""
        outcome = analyze(parse(solidity_bank), EngineConfig(custom_weights={"reentrancy": 2}))

        assert outcome.metrics.security == 50
        assert outcome.metrics.performance == 50
        assert outcome.score == 74

    def test_negative_weight_is_clamped(self, solidity_bank):
        """Given a negative weight, it acts as zero."""
        outcome = analyze(parse(solidity_bank), EngineConfig(custom_weights={"reentrancy": -1}))

        assert outcome.metrics.security == 100
        assert outcome.score == 99

    def test_unknown_weight_key_is_ignored(self, solidity_bank):
        """Given a weight for nothing known, scoring is unchanged."""
        outcome = analyze(parse(solidity_bank), EngineConfig(custom_weights={"bogus": 5}))

        assert outcome.score == 86

    def test_non_finite_weight_is_ignored(self, solidity_bank):
        """Given a NaN weight, scoring proceeds as if it were absent."""
        outcome = analyze(parse(solidity_bank), EngineConfig(custom_weights={"code_quality": float("nan")}))

        assert outcome.metrics.code_quality == 95
        assert outcome.score == 86

    def test_deterministic(self, solidity_bank):
        """Given the same input twice, the outcome is identical."""
        first = analyze(parse(solidity_bank))
        second = analyze(parse(solidity_bank))

        assert first == second
