"""Canonical loan program constants shared by every ledger component.

Every value here mirrors the deployed loan-management program so that records
written by either side decode and validate identically.

Program reference (create_loan / record_payment handlers):
    require!(principal_amount >= 5_000_000_000 && principal_amount <= 500_000_000_000)
    require!(interest_rate > 0 && interest_rate <= 3000)
    require!(tenure_months >= 3 && tenure_months <= 60)
    let due_date = loan.start_timestamp + (installment_number * 30 * 24 * 60 * 60);
    let grace_period = 2 * 24 * 60 * 60;
    let daily_fine_rate = 50; // 0.5% per day
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------
SECONDS_PER_DAY: int = 24 * 60 * 60
DAYS_PER_PERIOD: int = 30
SECONDS_PER_PERIOD: int = DAYS_PER_PERIOD * SECONDS_PER_DAY
DEFAULT_GRACE_DAYS: int = 2

# ---------------------------------------------------------------------------
# Rates (basis points, NOT percent)
# ---------------------------------------------------------------------------
BPS_DENOMINATOR: int = 10_000
MONTHS_PER_YEAR: int = 12
MAX_INTEREST_RATE_BPS: int = 3_000      # 30.00 % p.a.
MAX_FEE_PERCENTAGE_BPS: int = 1_000     # 10.00 %
DEFAULT_DAILY_FINE_RATE_BPS: int = 50   # 0.50 % of the installment per day
DEFAULT_FINE_CAP_BPS: int = 1_000       # 10.00 % of the installment

# ---------------------------------------------------------------------------
# Origination bounds (smallest currency unit, 6 decimals)
# ---------------------------------------------------------------------------
MIN_PRINCIPAL: int = 5_000_000_000
MAX_PRINCIPAL: int = 500_000_000_000
MIN_TENURE_MONTHS: int = 3
MAX_TENURE_MONTHS: int = 60
MAX_RECOMMENDED_LOAN: int = 500_000_000_000

# ---------------------------------------------------------------------------
# Credit scoring
# ---------------------------------------------------------------------------
INITIAL_CREDIT_SCORE: int = 500
MIN_CREDIT_SCORE: int = 300
MAX_CREDIT_SCORE: int = 850
MAX_RISK_SCORE: int = 1_000
MAX_DEFAULT_PROBABILITY_BPS: int = 10_000
ON_TIME_PAYMENT_BONUS: int = 2
LATE_PAYMENT_PENALTY: int = 5
COMPLETION_BONUS: int = 20
DEFAULT_PENALTY: int = 100
RISK_FACTORS_COUNT: int = 5

# ---------------------------------------------------------------------------
# Record string bounds (UTF-8 bytes)
# ---------------------------------------------------------------------------
MAX_NAME_LEN: int = 100
MAX_PAYMENT_HASH_LEN: int = 100
MAX_IDENTITY_LEN: int = 64

# ---------------------------------------------------------------------------
# Record address seeds
# ---------------------------------------------------------------------------
SEED_PROGRAM_STATE: str = "program-state"
SEED_USER_PROFILE: str = "user-profile"
SEED_LOAN: str = "loan"
SEED_PAYMENT: str = "payment"
SEED_RISK_PROFILE: str = "risk-profile"


def period_offset(periods: int) -> int:
    """Return the number of seconds covered by ``periods`` fixed 30-day months.

    Example:  12  ->  31_104_000
    """
    return periods * SECONDS_PER_PERIOD

