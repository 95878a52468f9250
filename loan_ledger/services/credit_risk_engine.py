"""Credit score and risk tier maintenance for borrower profiles."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional, Tuple

from loan_ledger.common.numeric_policy import U8, U16, U64, checked_add, checked_mul, clamp, saturating_add, saturating_sub
from loan_ledger.common.protocol_constants import RISK_FACTORS_COUNT
from loan_ledger.common.scoring_policy import DEFAULT_SCORING_POLICY, ScoringPolicy
from loan_ledger.models.enums import RiskLevel
from loan_ledger.models.exceptions import ErrorKind, LoanProgramError
from loan_ledger.models.risk_profiles import RiskProfile
from loan_ledger.models.users import UserProfile


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RiskAssessment:
    """Validated outcome of an externally supplied risk score."""

    risk_score: int
    risk_level: RiskLevel
    default_probability: int
    recommended_max_loan: int
    credit_score: int


def _raise_score(score: int, delta: int, policy: ScoringPolicy) -> int:
    return saturating_add(score, delta, policy.max_credit_score)


def _lower_score(score: int, delta: int, policy: ScoringPolicy) -> int:
    return saturating_sub(score, delta, policy.min_credit_score)


def apply_payment_outcome(
    profile: UserProfile,
    on_time: bool,
    amount: int,
    now: int,
    policy: ScoringPolicy = DEFAULT_SCORING_POLICY,
) -> UserProfile:
    """Count the payment, adjust the score and accumulate ``total_repaid``."""
    total_repaid = checked_add(profile.total_repaid, amount, U64)
    if on_time:
        return profile.evolve(
            total_repaid=total_repaid,
            on_time_payments=checked_add(profile.on_time_payments, 1, U16),
            credit_score=_raise_score(profile.credit_score, policy.on_time_bonus, policy),
            last_updated=now,
        )
    return profile.evolve(
        total_repaid=total_repaid,
        late_payments=checked_add(profile.late_payments, 1, U16),
        credit_score=_lower_score(profile.credit_score, policy.late_penalty, policy),
        last_updated=now,
    )


def apply_completion(profile: UserProfile, now: int, policy: ScoringPolicy = DEFAULT_SCORING_POLICY) -> UserProfile:
    return profile.evolve(
        active_loans=saturating_sub(profile.active_loans, 1),
        completed_loans=checked_add(profile.completed_loans, 1, U16),
        credit_score=_raise_score(profile.credit_score, policy.completion_bonus, policy),
        last_updated=now,
    )


def apply_default(profile: UserProfile, now: int, policy: ScoringPolicy = DEFAULT_SCORING_POLICY) -> UserProfile:
    return profile.evolve(
        active_loans=saturating_sub(profile.active_loans, 1),
        defaulted_loans=checked_add(profile.defaulted_loans, 1, U8),
        credit_score=_lower_score(profile.credit_score, policy.default_penalty, policy),
        risk_level=RiskLevel.CRITICAL,
        last_updated=now,
    )


def assess_risk(
    risk_score: int,
    risk_level: RiskLevel,
    default_probability_bps: int,
    monthly_income: int,
    policy: ScoringPolicy = DEFAULT_SCORING_POLICY,
) -> RiskAssessment:
    """Validate a supplied score and derive the recommended loan ceiling.

    Raises:
        LoanProgramError: ``InvalidRiskScore``, ``InvalidDefaultProbability``
            or ``MathOverflow``.
    """
    if not 0 <= risk_score <= policy.max_risk_score:
        raise LoanProgramError(
            ErrorKind.INVALID_RISK_SCORE,
            "score {0} outside [0, {1}]".format(risk_score, policy.max_risk_score),
        )
    if not 0 <= default_probability_bps <= policy.max_default_probability_bps:
        raise LoanProgramError(
            ErrorKind.INVALID_DEFAULT_PROBABILITY,
            "probability {0} bps outside [0, {1}]".format(default_probability_bps, policy.max_default_probability_bps),
        )

    level = RiskLevel(risk_level)
    uncapped = checked_mul(monthly_income, policy.multiplier(level), U64)
    return RiskAssessment(
        risk_score=risk_score,
        risk_level=level,
        default_probability=default_probability_bps,
        recommended_max_loan=min(uncapped, policy.max_recommended_loan),
        credit_score=clamp(risk_score, policy.min_credit_score, policy.max_credit_score),
    )


def apply_assessment(
    profile: UserProfile,
    existing: Optional[RiskProfile],
    assessment: RiskAssessment,
    now: int,
) -> Tuple[UserProfile, RiskProfile]:
    """Return ``(profile, risk_profile)`` overwritten with ``assessment``."""
    updated_profile = profile.evolve(
        credit_score=assessment.credit_score,
        risk_level=assessment.risk_level,
        last_updated=now,
    )
    fields = dict(
        user=profile.authority,
        risk_score=assessment.risk_score,
        risk_level=assessment.risk_level,
        default_probability=assessment.default_probability,
        recommended_max_loan=assessment.recommended_max_loan,
        last_calculated=now,
        factors_count=RISK_FACTORS_COUNT,
    )
    risk_profile = existing.evolve(**fields) if existing is not None else RiskProfile.from_record(fields)
    logger.debug(
        "Risk assessment applied user=%s score=%s level=%s max_loan=%s",
        profile.authority,
        assessment.risk_score,
        assessment.risk_level.value,
        assessment.recommended_max_loan,
    )
    return updated_profile, risk_profile
