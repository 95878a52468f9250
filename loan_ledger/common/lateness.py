"""Installment due dates, lateness detection and late fines."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from loan_ledger.models.exceptions import ErrorKind, LoanProgramError

from .numeric_policy import I64, U16, U64, U128, checked_add, checked_mul, narrow
from .protocol_constants import (
    BPS_DENOMINATOR,
    DEFAULT_DAILY_FINE_RATE_BPS,
    DEFAULT_FINE_CAP_BPS,
    DEFAULT_GRACE_DAYS,
    SECONDS_PER_DAY,
    period_offset,
)


@dataclass(frozen=True)
class FinePolicy:
    """Grace window and fine parameters; ``fine_cap_bps=None`` disables the cap."""

    grace_days: int = DEFAULT_GRACE_DAYS
    daily_fine_rate_bps: int = DEFAULT_DAILY_FINE_RATE_BPS
    fine_cap_bps: Optional[int] = DEFAULT_FINE_CAP_BPS


DEFAULT_FINE_POLICY = FinePolicy()


@dataclass(frozen=True)
class PaymentAssessment:
    on_time: bool
    days_late: int
    fine_amount: int

    @property
    def is_late(self) -> bool:
        return not self.on_time


def due_date(loan_start: int, installment_number: int) -> int:
    """Installment ``n`` falls due ``n`` periods after the loan start."""
    return checked_add(loan_start, period_offset(installment_number), I64)


def grace_deadline(loan_start: int, installment_number: int, policy: FinePolicy = DEFAULT_FINE_POLICY) -> int:
    return checked_add(due_date(loan_start, installment_number), policy.grace_days * SECONDS_PER_DAY, I64)


def period_open(loan_start: int, installment_number: int) -> int:
    """Earliest timestamp at which installment ``n`` may be paid when prepayment is off."""
    return checked_add(loan_start, period_offset(installment_number - 1), I64)


def compute_fine(monthly_installment: int, days_late: int, policy: FinePolicy = DEFAULT_FINE_POLICY) -> int:
    """Daily-rate fine computed in u128 and narrowed to u64, then capped."""
    if days_late <= 0:
        return 0
    wide = checked_mul(monthly_installment, policy.daily_fine_rate_bps, U128)
    wide = checked_mul(wide, days_late, U128)
    fine = narrow(wide // BPS_DENOMINATOR, U64)
    if policy.fine_cap_bps is not None:
        cap = checked_mul(monthly_installment, policy.fine_cap_bps, U128) // BPS_DENOMINATOR
        fine = min(fine, cap)
    return fine


def assess_payment(
    loan_start: int,
    installment_number: int,
    monthly_installment: int,
    now: int,
    policy: FinePolicy = DEFAULT_FINE_POLICY,
) -> PaymentAssessment:
    """Classify a payment made at ``now`` and compute its fine.

    A payment is on time up to and including the end of the grace window.
    Lateness is counted in whole days after the window, so a payment less than
    a day past it is late but carries no fine.

    Raises:
        LoanProgramError: ``MathOverflow`` if days late exceed u16 or the fine
            exceeds u64.
    """
    deadline = grace_deadline(loan_start, installment_number, policy)
    if now <= deadline:
        return PaymentAssessment(on_time=True, days_late=0, fine_amount=0)

    days_late = narrow((now - deadline) // SECONDS_PER_DAY, U16)
    return PaymentAssessment(
        on_time=False,
        days_late=days_late,
        fine_amount=compute_fine(monthly_installment, days_late, policy),
    )


def ensure_payable(loan_start: int, installment_number: int, now: int, allow_prepayment: bool) -> None:
    """Reject a payment made before its period opens when prepayment is disabled."""
    if allow_prepayment:
        return
    opens_at = period_open(loan_start, installment_number)
    if now < opens_at:
        raise LoanProgramError(
            ErrorKind.PAYMENT_TOO_EARLY,
            "installment {0} opens at {1}".format(installment_number, opens_at),
        )


@dataclass(frozen=True)
class InstallmentStatus:
    """Repayment state of one scheduled installment.

    Paid rows carry what was recorded; unpaid rows are assessed at query time
    and ``total_due`` is the exact amount a payment must cover right now.
    """

    installment_number: int
    due_timestamp: int
    amount: int
    paid: bool
    on_time: bool
    days_late: int
    fine_amount: int
    total_due: int

    @property
    def status(self) -> str:
        if self.paid:
            return "PAID"
        return "PENDING" if self.on_time else "OVERDUE"


def outstanding_installment(
    loan_start: int,
    installment_number: int,
    monthly_installment: int,
    now: int,
    policy: FinePolicy = DEFAULT_FINE_POLICY,
) -> InstallmentStatus:
    """Assess an unpaid installment as if it were paid at ``now``."""
    assessment = assess_payment(loan_start, installment_number, monthly_installment, now, policy)
    return InstallmentStatus(
        installment_number=installment_number,
        due_timestamp=due_date(loan_start, installment_number),
        amount=monthly_installment,
        paid=False,
        on_time=assessment.on_time,
        days_late=assessment.days_late,
        fine_amount=assessment.fine_amount,
        total_due=checked_add(monthly_installment, assessment.fine_amount, U64),
    )
