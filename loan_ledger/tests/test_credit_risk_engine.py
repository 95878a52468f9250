"""Unit tests for credit score maintenance and risk assessment."""

import unittest

from loan_ledger.common.scoring_policy import DEFAULT_INCOME_MULTIPLIERS, ScoringPolicy
from loan_ledger.models.enums import EmploymentType, RiskLevel
from loan_ledger.models.exceptions import ErrorKind, LoanProgramError, ModelValidationError
from loan_ledger.models.users import UserProfile
from loan_ledger.services.credit_risk_engine import (
    apply_assessment,
    apply_completion,
    apply_default,
    apply_payment_outcome,
    assess_risk,
)


NOW = 1_700_000_000


def _profile(**overrides) -> UserProfile:
    payload = dict(
        authority="alice-key",
        full_name="Alice",
        monthly_income=20_000_000_000,
        employment_type=EmploymentType.SALARIED,
        active_loans=1,
        total_loans=1,
        registration_timestamp=NOW,
        last_updated=NOW,
    )
    payload.update(overrides)
    return UserProfile(**payload)


class PaymentOutcomeTests(unittest.TestCase):
    def test_on_time_payment_raises_score(self) -> None:
        updated = apply_payment_outcome(_profile(), True, 1_000, NOW + 5)
        self.assertEqual(updated.credit_score, 502)
        self.assertEqual(updated.on_time_payments, 1)
        self.assertEqual(updated.total_repaid, 1_000)
        self.assertEqual(updated.last_updated, NOW + 5)

    def test_on_time_bonus_saturates_at_ceiling(self) -> None:
        self.assertEqual(apply_payment_outcome(_profile(credit_score=849), True, 1, NOW).credit_score, 850)

    def test_late_payment_lowers_score(self) -> None:
        updated = apply_payment_outcome(_profile(), False, 1_000, NOW)
        self.assertEqual(updated.credit_score, 495)
        self.assertEqual(updated.late_payments, 1)
        self.assertEqual(updated.on_time_payments, 0)

    def test_late_penalty_saturates_at_floor(self) -> None:
        self.assertEqual(apply_payment_outcome(_profile(credit_score=302), False, 1, NOW).credit_score, 300)

    def test_total_repaid_overflow(self) -> None:
        with self.assertRaises(LoanProgramError) as ctx:
            apply_payment_outcome(_profile(total_repaid=2**64 - 1), True, 1, NOW)
        self.assertEqual(ctx.exception.kind, ErrorKind.MATH_OVERFLOW)


class ClosureTests(unittest.TestCase):
    def test_completion(self) -> None:
        updated = apply_completion(_profile(credit_score=840), NOW)
        self.assertEqual(updated.credit_score, 850)
        self.assertEqual(updated.active_loans, 0)
        self.assertEqual(updated.completed_loans, 1)

    def test_default(self) -> None:
        updated = apply_default(_profile(credit_score=350), NOW)
        self.assertEqual(updated.credit_score, 300)
        self.assertEqual(updated.risk_level, RiskLevel.CRITICAL)
        self.assertEqual(updated.active_loans, 0)
        self.assertEqual(updated.defaulted_loans, 1)

    def test_active_loans_saturate_at_zero(self) -> None:
        self.assertEqual(apply_default(_profile(active_loans=0), NOW).active_loans, 0)


class AssessRiskTests(unittest.TestCase):
    """Recommended loan ceiling and input bounds."""

    def test_multiplier_by_tier(self) -> None:
        income = 1_000_000_000
        expected = {RiskLevel.LOW: 10, RiskLevel.MEDIUM: 6, RiskLevel.HIGH: 3, RiskLevel.CRITICAL: 1}
        for level, multiplier in expected.items():
            self.assertEqual(assess_risk(700, level, 500, income).recommended_max_loan, income * multiplier)

    def test_recommended_loan_capped(self) -> None:
        assessment = assess_risk(700, RiskLevel.LOW, 500, 80_000_000_000)
        self.assertEqual(assessment.recommended_max_loan, 500_000_000_000)

    def test_credit_score_clamped_raw_score_kept(self) -> None:
        assessment = assess_risk(950, RiskLevel.LOW, 100, 1)
        self.assertEqual(assessment.risk_score, 950)
        self.assertEqual(assessment.credit_score, 850)
        self.assertEqual(assess_risk(120, RiskLevel.HIGH, 100, 1).credit_score, 300)

    def test_bounds(self) -> None:
        self.assertEqual(assess_risk(1000, RiskLevel.LOW, 10_000, 1).risk_score, 1000)
        with self.assertRaises(LoanProgramError) as ctx:
            assess_risk(1001, RiskLevel.LOW, 0, 1)
        self.assertEqual(ctx.exception.kind, ErrorKind.INVALID_RISK_SCORE)
        with self.assertRaises(LoanProgramError) as ctx:
            assess_risk(500, RiskLevel.LOW, 10_001, 1)
        self.assertEqual(ctx.exception.kind, ErrorKind.INVALID_DEFAULT_PROBABILITY)

    def test_income_multiplication_overflow(self) -> None:
        with self.assertRaises(LoanProgramError) as ctx:
            assess_risk(500, RiskLevel.LOW, 0, 2**63)
        self.assertEqual(ctx.exception.kind, ErrorKind.MATH_OVERFLOW)

    def test_apply_assessment_creates_risk_profile(self) -> None:
        profile = _profile()
        assessment = assess_risk(720, RiskLevel.LOW, 400, profile.monthly_income)
        updated, risk_profile = apply_assessment(profile, None, assessment, NOW)
        self.assertEqual(updated.credit_score, 720)
        self.assertEqual(updated.risk_level, RiskLevel.LOW)
        self.assertEqual(risk_profile.user, profile.authority)
        self.assertEqual(risk_profile.recommended_max_loan, 200_000_000_000)
        self.assertEqual(risk_profile.factors_count, 5)


class ScoringPolicyTests(unittest.TestCase):
    """Policy tables must be exhaustive and strictly decreasing."""

    def test_default_policy_valid(self) -> None:
        self.assertIsInstance(ScoringPolicy().validate(), ScoringPolicy)

    def test_missing_tier_rejected(self) -> None:
        table = dict(DEFAULT_INCOME_MULTIPLIERS)
        del table[RiskLevel.CRITICAL]
        with self.assertRaises(ModelValidationError):
            ScoringPolicy(income_multipliers=table).validate()

    def test_non_decreasing_rejected(self) -> None:
        table = dict(DEFAULT_INCOME_MULTIPLIERS)
        table[RiskLevel.HIGH] = 6
        with self.assertRaises(ModelValidationError):
            ScoringPolicy(income_multipliers=table).validate()

    def test_inverted_bounds_rejected(self) -> None:
        with self.assertRaises(ModelValidationError):
            ScoringPolicy(min_credit_score=800, max_credit_score=700).validate()

    def test_bounds_excluding_initial_score_rejected(self) -> None:
        with self.assertRaises(ModelValidationError):
            ScoringPolicy(max_credit_score=450).validate()
        with self.assertRaises(ModelValidationError):
            ScoringPolicy(min_credit_score=550).validate()
        ScoringPolicy(min_credit_score=500, max_credit_score=500).validate()


if __name__ == "__main__":
    unittest.main()
