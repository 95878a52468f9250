"""Unit tests for installment computation and schedules."""

import unittest

from loan_ledger.common.amortization import (
    LoanTermBounds,
    build_schedule,
    compute_installment,
    loan_end_timestamp,
    validate_terms,
)
from loan_ledger.common.protocol_constants import SECONDS_PER_PERIOD
from loan_ledger.models.enums import AmortizationMode
from loan_ledger.models.exceptions import ErrorKind, LoanProgramError


class ComputeInstallmentTests(unittest.TestCase):
    """Amortizing formula behaviour in both arithmetic modes."""

    def test_reference_scenario(self) -> None:
        """10,000 units at 12% p.a. over 12 months amortize to ~888.49 units."""
        installment, total = compute_installment(10_000_000_000, 1200, 12)
        self.assertGreater(installment, 888_480_000)
        self.assertLess(installment, 888_495_000)
        self.assertEqual(total, installment * 12)
        self.assertGreater(total, 10_000_000_000)

    def test_decimal_mode_agrees_with_float_mode(self) -> None:
        float_installment, _ = compute_installment(10_000_000_000, 1200, 12, AmortizationMode.FLOAT)
        decimal_installment, decimal_total = compute_installment(
            10_000_000_000, 1200, 12, AmortizationMode.DECIMAL
        )
        self.assertLessEqual(abs(float_installment - decimal_installment), 1)
        self.assertEqual(decimal_total, decimal_installment * 12)

    def test_zero_rate_forgives_remainder(self) -> None:
        installment, total = compute_installment(10_000_000_001, 0, 3)
        self.assertEqual(installment, 3_333_333_333)
        self.assertEqual(total, 9_999_999_999)

    def test_decimal_zero_rate(self) -> None:
        installment, total = compute_installment(9_000_000_000, 0, 3, AmortizationMode.DECIMAL)
        self.assertEqual((installment, total), (3_000_000_000, 9_000_000_000))

    def test_non_positive_tenure_rejected(self) -> None:
        with self.assertRaises(LoanProgramError) as ctx:
            compute_installment(10_000_000_000, 1200, 0)
        self.assertEqual(ctx.exception.kind, ErrorKind.INVALID_TENURE)

    def test_total_overflow_detected(self) -> None:
        with self.assertRaises(LoanProgramError) as ctx:
            compute_installment(2**64 - 1, 1200, 12)
        self.assertEqual(ctx.exception.kind, ErrorKind.MATH_OVERFLOW)


class ValidateTermsTests(unittest.TestCase):
    """Origination bounds are checked in amount, rate, tenure order."""

    def test_valid_bounds_pass(self) -> None:
        validate_terms(5_000_000_000, 1, 3)
        validate_terms(500_000_000_000, 3000, 60)

    def test_amount_checked_first(self) -> None:
        with self.assertRaises(LoanProgramError) as ctx:
            validate_terms(4_999_999_999, 0, 0)
        self.assertEqual(ctx.exception.kind, ErrorKind.INVALID_LOAN_AMOUNT)

    def test_rate_bounds(self) -> None:
        for rate in (0, 3001):
            with self.assertRaises(LoanProgramError) as ctx:
                validate_terms(10_000_000_000, rate, 12)
            self.assertEqual(ctx.exception.kind, ErrorKind.INVALID_INTEREST_RATE)

    def test_tenure_bounds(self) -> None:
        for tenure in (2, 61):
            with self.assertRaises(LoanProgramError) as ctx:
                validate_terms(10_000_000_000, 1200, tenure)
            self.assertEqual(ctx.exception.kind, ErrorKind.INVALID_TENURE)

    def test_custom_bounds(self) -> None:
        bounds = LoanTermBounds(min_principal=1, max_principal=10, max_interest_rate_bps=100)
        validate_terms(10, 100, 12, bounds)
        with self.assertRaises(LoanProgramError):
            validate_terms(11, 100, 12, bounds)


class ScheduleTests(unittest.TestCase):
    def test_schedule_due_dates(self) -> None:
        schedule = build_schedule(1_000, 3, 42)
        self.assertEqual([entry.installment_number for entry in schedule], [1, 2, 3])
        self.assertEqual(schedule[0].due_timestamp, 1_000 + SECONDS_PER_PERIOD)
        self.assertEqual(schedule[-1].due_timestamp, 1_000 + 3 * SECONDS_PER_PERIOD)
        self.assertTrue(all(entry.amount == 42 for entry in schedule))

    def test_end_timestamp(self) -> None:
        self.assertEqual(loan_end_timestamp(0, 12), 12 * 30 * 24 * 60 * 60)
        with self.assertRaises(LoanProgramError):
            loan_end_timestamp(2**63 - 10, 1)


if __name__ == "__main__":
    unittest.main()
