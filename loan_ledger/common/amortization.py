"""Equal-installment amortization math for loan origination."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, Context, Decimal
import logging
from typing import List, Tuple

from loan_ledger.models.enums import AmortizationMode
from loan_ledger.models.exceptions import ErrorKind, LoanProgramError

from .numeric_policy import I64, U64, checked_add, checked_mul, narrow
from .protocol_constants import (
    BPS_DENOMINATOR,
    MAX_INTEREST_RATE_BPS,
    MAX_PRINCIPAL,
    MAX_TENURE_MONTHS,
    MIN_PRINCIPAL,
    MIN_TENURE_MONTHS,
    MONTHS_PER_YEAR,
    period_offset,
)


logger = logging.getLogger(__name__)

DECIMAL_PRECISION = 40
_DECIMAL_CONTEXT = Context(prec=DECIMAL_PRECISION, rounding=ROUND_DOWN)


@dataclass(frozen=True)
class LoanTermBounds:
    """Inclusive origination bounds; the rate lower bound is exclusive of zero."""

    min_principal: int = MIN_PRINCIPAL
    max_principal: int = MAX_PRINCIPAL
    max_interest_rate_bps: int = MAX_INTEREST_RATE_BPS
    min_tenure_months: int = MIN_TENURE_MONTHS
    max_tenure_months: int = MAX_TENURE_MONTHS


DEFAULT_TERM_BOUNDS = LoanTermBounds()


@dataclass(frozen=True)
class ScheduleEntry:
    """One row of a display schedule."""

    installment_number: int
    due_timestamp: int
    amount: int


def validate_terms(
    principal: int,
    annual_rate_bps: int,
    tenure_months: int,
    bounds: LoanTermBounds = DEFAULT_TERM_BOUNDS,
) -> None:
    """Reject loan terms outside the origination bounds.

    Raises:
        LoanProgramError: ``InvalidLoanAmount``, ``InvalidInterestRate`` or
            ``InvalidTenure``, checked in that order.
    """
    if not bounds.min_principal <= principal <= bounds.max_principal:
        raise LoanProgramError(
            ErrorKind.INVALID_LOAN_AMOUNT,
            "principal {0} outside [{1}, {2}]".format(principal, bounds.min_principal, bounds.max_principal),
        )
    if not 0 < annual_rate_bps <= bounds.max_interest_rate_bps:
        raise LoanProgramError(
            ErrorKind.INVALID_INTEREST_RATE,
            "rate {0} bps outside (0, {1}]".format(annual_rate_bps, bounds.max_interest_rate_bps),
        )
    if not bounds.min_tenure_months <= tenure_months <= bounds.max_tenure_months:
        raise LoanProgramError(
            ErrorKind.INVALID_TENURE,
            "tenure {0} outside [{1}, {2}]".format(
                tenure_months, bounds.min_tenure_months, bounds.max_tenure_months
            ),
        )


def _float_installment(principal: int, annual_rate_bps: int, tenure_months: int) -> int:
    # Evaluation order matches records written by the on-chain program.
    monthly_rate = float(annual_rate_bps) / 12.0 / 10000.0
    periods = float(tenure_months)
    if monthly_rate == 0.0:
        return principal // tenure_months
    numerator = float(principal) * monthly_rate * (1.0 + monthly_rate) ** periods
    denominator = (1.0 + monthly_rate) ** periods - 1.0
    return int(numerator / denominator)


def _decimal_installment(principal: int, annual_rate_bps: int, tenure_months: int) -> int:
    ctx = _DECIMAL_CONTEXT
    monthly_rate = ctx.divide(Decimal(annual_rate_bps), Decimal(MONTHS_PER_YEAR * BPS_DENOMINATOR))
    if monthly_rate == 0:
        return principal // tenure_months
    factor = ctx.power(ctx.add(Decimal(1), monthly_rate), tenure_months)
    numerator = ctx.multiply(ctx.multiply(Decimal(principal), monthly_rate), factor)
    denominator = ctx.subtract(factor, Decimal(1))
    return int(ctx.divide(numerator, denominator).to_integral_value(rounding=ROUND_DOWN))


def compute_installment(
    principal: int,
    annual_rate_bps: int,
    tenure_months: int,
    mode: AmortizationMode = AmortizationMode.FLOAT,
) -> Tuple[int, int]:
    """Return ``(monthly_installment, total_amount)`` for an amortizing loan.

    A zero rate divides the principal evenly and forgives the remainder.
    ``total_amount`` is always ``monthly_installment * tenure_months``.

    Raises:
        LoanProgramError: ``InvalidTenure`` for a non-positive tenure and
            ``MathOverflow`` when the result leaves the u64 range.
    """
    if tenure_months <= 0:
        raise LoanProgramError(ErrorKind.INVALID_TENURE, "tenure must be positive")

    if mode == AmortizationMode.DECIMAL:
        raw_installment = _decimal_installment(principal, annual_rate_bps, tenure_months)
    else:
        raw_installment = _float_installment(principal, annual_rate_bps, tenure_months)

    monthly_installment = narrow(raw_installment, U64)
    total_amount = checked_mul(monthly_installment, tenure_months, U64)
    logger.debug(
        "Computed installment principal=%s rate_bps=%s tenure=%s mode=%s installment=%s total=%s",
        principal,
        annual_rate_bps,
        tenure_months,
        mode.value,
        monthly_installment,
        total_amount,
    )
    return monthly_installment, total_amount


def loan_end_timestamp(start_timestamp: int, tenure_months: int) -> int:
    """Return ``start + tenure * 30 days`` as a checked i64."""
    return checked_add(start_timestamp, period_offset(tenure_months), I64)


def build_schedule(start_timestamp: int, tenure_months: int, monthly_installment: int) -> List[ScheduleEntry]:
    """List each installment with its due timestamp (start + k * 30 days)."""
    return [
        ScheduleEntry(
            installment_number=number,
            due_timestamp=checked_add(start_timestamp, period_offset(number), I64),
            amount=monthly_installment,
        )
        for number in range(1, tenure_months + 1)
    ]
