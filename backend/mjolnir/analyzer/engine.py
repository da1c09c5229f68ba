"""
Rule engine.

Runs the enabled rules over a ContractModel, applies configured weights and
returns ordered issues plus the scorer's metrics. Issues are ordered by
severity (high first), then line (issues without a line last), then rule
registration order, then the order the rule emitted them, so identical
input always yields an identical issue list.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from mjolnir.analyzer.models import Category, Contribution, Issue, Metrics
from mjolnir.analyzer.rules import RULES, RULES_BY_NAME, Rule
from mjolnir.analyzer.scorer import score
from mjolnir.ir.model import ContractModel
from mjolnir.utils.logger import get_logger

logger = get_logger(__name__)

ALL_RULES = "all"
CATEGORY_NAMES = {category.value for category in Category}


@dataclass
class EngineConfig:
    enabled_rules: list[str] = field(default_factory=list)
    custom_weights: dict[str, float] = field(default_factory=dict)


@dataclass
class AnalysisOutcome:
    score: int
    metrics: Metrics
    issues: list[Issue]


def select_rules(enabled: list[str] | None) -> list[Rule]:
    """Rules to run, in registration order."""
    if not enabled or ALL_RULES in enabled:
        return list(RULES)
    for name in enabled:
        if name not in RULES_BY_NAME:
            logger.warning("Ignoring unknown rule '%s'", name)
    wanted = set(enabled)
    return [rule for rule in RULES if rule.name in wanted]


def _weights(custom: dict[str, float] | None) -> dict[str, float]:
    weights = {}
    for key, value in (custom or {}).items():
        if key not in RULES_BY_NAME and key not in CATEGORY_NAMES:
            logger.warning("Ignoring weight for unknown rule or category '%s'", key)
            continue
        if not math.isfinite(value):
            logger.warning("Ignoring non-finite weight for '%s'", key)
            continue
        weights[key] = max(float(value), 0.0)
    return weights


def analyze(model: ContractModel, config: EngineConfig | None = None) -> AnalysisOutcome:
    config = config or EngineConfig()
    rules = select_rules(config.enabled_rules)
    weights = _weights(config.custom_weights)

    keyed: list[tuple[tuple, Issue]] = []
    contributions: list[Contribution] = []
    for rule_index, rule in enumerate(rules):
        findings = rule.check(model)
        for emission_index, finding in enumerate(findings):
            issue = Issue(rule.severity, finding.message, finding.line, finding.recommendation, rule.name)
            sort_key = (
                -rule.severity.rank,
                finding.line is None,
                finding.line or 0,
                rule_index,
                emission_index,
            )
            keyed.append((sort_key, issue))
            for category in rule.categories:
                weight = weights.get(rule.name, 1.0) * weights.get(category.value, 1.0)
                contributions.append(Contribution(rule.name, category, rule.severity, weight))
        if findings:
            logger.debug("Rule %s produced %d issue(s)", rule.name, len(findings))

    keyed.sort(key=lambda pair: pair[0])
    issues = [issue for _, issue in keyed]
    metrics, overall = score(contributions)
    logger.info(
        "Analyzed '%s': %d rules, %d issues, score %d",
        model.name,
        len(rules),
        len(issues),
        overall,
    )
    return AnalysisOutcome(overall, metrics, issues)
