"""
Analysis result types shared by the rule engine and the scorer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Higher is more severe."""
        return {Severity.HIGH: 3, Severity.MEDIUM: 2, Severity.LOW: 1}[self]


class Category(str, Enum):
    PERFORMANCE = "performance"
    SECURITY = "security"
    GAS_EFFICIENCY = "gas_efficiency"
    CODE_QUALITY = "code_quality"


@dataclass(frozen=True)
class Issue:
    severity: Severity
    message: str
    line: int | None = None
    recommendation: str | None = None
    rule: str = ""


@dataclass(frozen=True)
class Metrics:
    performance: int = 100
    security: int = 100
    gas_efficiency: int = 100
    code_quality: int = 100

    def as_dict(self) -> dict[str, int]:
        return {
            "performance": self.performance,
            "security": self.security,
            "gas_efficiency": self.gas_efficiency,
            "code_quality": self.code_quality,
        }


@dataclass(frozen=True)
class Contribution:
    """One issue's penalty landing in one category."""

    rule: str
    category: Category
    severity: Severity
    weight: float = 1.0
