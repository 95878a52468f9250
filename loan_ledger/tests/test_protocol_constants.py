"""Unit tests for protocol constants shared with the deployed loan program."""

from __future__ import annotations

import unittest

from loan_ledger.common.protocol_constants import (
    BPS_DENOMINATOR,
    DEFAULT_DAILY_FINE_RATE_BPS,
    DEFAULT_GRACE_DAYS,
    INITIAL_CREDIT_SCORE,
    MAX_CREDIT_SCORE,
    MAX_PRINCIPAL,
    MIN_CREDIT_SCORE,
    MIN_PRINCIPAL,
    SECONDS_PER_DAY,
    SECONDS_PER_PERIOD,
    period_offset,
)


class TestConstants(unittest.TestCase):
    """Verify constant values match the deployed program."""

    def test_period_length(self) -> None:
        self.assertEqual(SECONDS_PER_DAY, 86_400)
        self.assertEqual(SECONDS_PER_PERIOD, 2_592_000)

    def test_fine_defaults(self) -> None:
        self.assertEqual(DEFAULT_GRACE_DAYS, 2)
        self.assertEqual(DEFAULT_DAILY_FINE_RATE_BPS, 50)
        self.assertEqual(BPS_DENOMINATOR, 10_000)

    def test_principal_bounds(self) -> None:
        self.assertEqual(MIN_PRINCIPAL, 5_000 * 10**6)
        self.assertEqual(MAX_PRINCIPAL, 500_000 * 10**6)

    def test_score_bounds(self) -> None:
        self.assertLess(MIN_CREDIT_SCORE, INITIAL_CREDIT_SCORE)
        self.assertLess(INITIAL_CREDIT_SCORE, MAX_CREDIT_SCORE)


class TestPeriodOffset(unittest.TestCase):
    def test_twelve_periods(self) -> None:
        self.assertEqual(period_offset(12), 31_104_000)

    def test_zero_periods(self) -> None:
        self.assertEqual(period_offset(0), 0)


if __name__ == "__main__":
    unittest.main()
