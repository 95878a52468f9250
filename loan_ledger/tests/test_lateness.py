"""Unit tests for due dates, lateness and fines."""

import unittest

from loan_ledger.common.lateness import (
    FinePolicy,
    assess_payment,
    compute_fine,
    due_date,
    ensure_payable,
    grace_deadline,
    period_open,
)
from loan_ledger.common.protocol_constants import SECONDS_PER_DAY, SECONDS_PER_PERIOD
from loan_ledger.models.exceptions import ErrorKind, LoanProgramError


START = 1_700_000_000
INSTALLMENT = 1_000_000


class DueDateTests(unittest.TestCase):
    def test_due_date_uses_thirty_day_periods(self) -> None:
        self.assertEqual(due_date(START, 1), START + SECONDS_PER_PERIOD)
        self.assertEqual(due_date(START, 12), START + 12 * SECONDS_PER_PERIOD)

    def test_grace_deadline(self) -> None:
        self.assertEqual(grace_deadline(START, 1), START + SECONDS_PER_PERIOD + 2 * SECONDS_PER_DAY)
        custom = FinePolicy(grace_days=5)
        self.assertEqual(grace_deadline(START, 1, custom), START + SECONDS_PER_PERIOD + 5 * SECONDS_PER_DAY)

    def test_period_open(self) -> None:
        self.assertEqual(period_open(START, 1), START)
        self.assertEqual(period_open(START, 3), START + 2 * SECONDS_PER_PERIOD)


class AssessPaymentTests(unittest.TestCase):
    """On-time window, day counting and fine formula."""

    def test_payment_at_grace_deadline_is_on_time(self) -> None:
        deadline = grace_deadline(START, 1)
        result = assess_payment(START, 1, INSTALLMENT, deadline)
        self.assertTrue(result.on_time)
        self.assertEqual((result.days_late, result.fine_amount), (0, 0))

    def test_early_payment_is_on_time(self) -> None:
        self.assertTrue(assess_payment(START, 3, INSTALLMENT, START).on_time)

    def test_late_within_first_day_has_no_fine(self) -> None:
        result = assess_payment(START, 1, INSTALLMENT, grace_deadline(START, 1) + 1)
        self.assertFalse(result.on_time)
        self.assertTrue(result.is_late)
        self.assertEqual((result.days_late, result.fine_amount), (0, 0))

    def test_five_days_late(self) -> None:
        """Five days past due + grace charges 5 x 0.5% of the installment."""
        now = grace_deadline(START, 1) + 5 * SECONDS_PER_DAY
        result = assess_payment(START, 1, INSTALLMENT, now)
        self.assertFalse(result.on_time)
        self.assertEqual(result.days_late, 5)
        self.assertEqual(result.fine_amount, INSTALLMENT * 50 * 5 // 10_000)
        self.assertEqual(result.fine_amount, 25_000)

    def test_partial_day_rounds_down(self) -> None:
        now = grace_deadline(START, 2) + 3 * SECONDS_PER_DAY + SECONDS_PER_DAY - 1
        self.assertEqual(assess_payment(START, 2, INSTALLMENT, now).days_late, 3)

    def test_days_late_beyond_u16_overflows(self) -> None:
        now = grace_deadline(START, 1) + 70_000 * SECONDS_PER_DAY
        with self.assertRaises(LoanProgramError) as ctx:
            assess_payment(START, 1, INSTALLMENT, now)
        self.assertEqual(ctx.exception.kind, ErrorKind.MATH_OVERFLOW)


class FineCapTests(unittest.TestCase):
    """The fine is capped at a share of the installment unless disabled."""

    def test_default_cap_is_ten_percent(self) -> None:
        self.assertEqual(compute_fine(INSTALLMENT, 30), 100_000)

    def test_cap_disabled(self) -> None:
        self.assertEqual(compute_fine(INSTALLMENT, 30, FinePolicy(fine_cap_bps=None)), 150_000)

    def test_below_cap_unchanged(self) -> None:
        self.assertEqual(compute_fine(INSTALLMENT, 10), 50_000)

    def test_wide_intermediate(self) -> None:
        """The product exceeds u64 before division but the fine itself fits."""
        installment = 2**62
        fine = compute_fine(installment, 100, FinePolicy(fine_cap_bps=None))
        self.assertEqual(fine, installment * 50 * 100 // 10_000)


class EnsurePayableTests(unittest.TestCase):
    def test_prepayment_allowed(self) -> None:
        ensure_payable(START, 5, START, allow_prepayment=True)

    def test_prepayment_blocked_before_period_opens(self) -> None:
        with self.assertRaises(LoanProgramError) as ctx:
            ensure_payable(START, 2, START + SECONDS_PER_PERIOD - 1, allow_prepayment=False)
        self.assertEqual(ctx.exception.kind, ErrorKind.PAYMENT_TOO_EARLY)
        ensure_payable(START, 2, START + SECONDS_PER_PERIOD, allow_prepayment=False)


if __name__ == "__main__":
    unittest.main()
