"""Credit score bounds, score deltas and income multipliers."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from loan_ledger.models.enums import RiskLevel
from loan_ledger.models.exceptions import ModelValidationError

from .protocol_constants import (
    COMPLETION_BONUS,
    DEFAULT_PENALTY,
    INITIAL_CREDIT_SCORE,
    LATE_PAYMENT_PENALTY,
    MAX_CREDIT_SCORE,
    MAX_DEFAULT_PROBABILITY_BPS,
    MAX_RECOMMENDED_LOAN,
    MAX_RISK_SCORE,
    MIN_CREDIT_SCORE,
    ON_TIME_PAYMENT_BONUS,
)


DEFAULT_INCOME_MULTIPLIERS: Mapping[RiskLevel, int] = MappingProxyType(
    {
        RiskLevel.LOW: 10,
        RiskLevel.MEDIUM: 6,
        RiskLevel.HIGH: 3,
        RiskLevel.CRITICAL: 1,
    }
)


@dataclass(frozen=True)
class ScoringPolicy:
    """Score deltas, bounds and the per-tier income multipliers."""

    min_credit_score: int = MIN_CREDIT_SCORE
    max_credit_score: int = MAX_CREDIT_SCORE
    on_time_bonus: int = ON_TIME_PAYMENT_BONUS
    late_penalty: int = LATE_PAYMENT_PENALTY
    completion_bonus: int = COMPLETION_BONUS
    default_penalty: int = DEFAULT_PENALTY
    max_risk_score: int = MAX_RISK_SCORE
    max_default_probability_bps: int = MAX_DEFAULT_PROBABILITY_BPS
    max_recommended_loan: int = MAX_RECOMMENDED_LOAN
    income_multipliers: Mapping[RiskLevel, int] = field(default_factory=lambda: DEFAULT_INCOME_MULTIPLIERS)

    def validate(self) -> "ScoringPolicy":
        """Check bounds and the multiplier table.

        Raises:
            ModelValidationError: If bounds are inverted or exclude the initial
                score, or the multiplier table misses a tier or is not
                strictly decreasing.
        """
        if not MIN_CREDIT_SCORE <= self.min_credit_score <= self.max_credit_score <= MAX_CREDIT_SCORE:
            raise ModelValidationError(
                "credit score bounds [{0}, {1}] are invalid".format(self.min_credit_score, self.max_credit_score)
            )
        if not self.min_credit_score <= INITIAL_CREDIT_SCORE <= self.max_credit_score:
            raise ModelValidationError(
                "initial credit score {0} lies outside [{1}, {2}]".format(
                    INITIAL_CREDIT_SCORE, self.min_credit_score, self.max_credit_score
                )
            )
        for name in ("on_time_bonus", "late_penalty", "completion_bonus", "default_penalty"):
            if getattr(self, name) < 0:
                raise ModelValidationError("{0} must not be negative".format(name))

        missing = [level.value for level in RiskLevel if level not in self.income_multipliers]
        if missing:
            raise ModelValidationError("income multipliers missing tiers: {0}".format(", ".join(missing)))
        ordered = [self.income_multipliers[level] for level in RiskLevel]
        if any(value <= 0 for value in ordered):
            raise ModelValidationError("income multipliers must be positive")
        if any(left <= right for left, right in zip(ordered, ordered[1:])):
            raise ModelValidationError("income multipliers must strictly decrease from LOW to CRITICAL")
        return self

    def multiplier(self, level: RiskLevel) -> int:
        return self.income_multipliers[RiskLevel(level)]


DEFAULT_SCORING_POLICY = ScoringPolicy().validate()
