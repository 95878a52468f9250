"""Pure loan lifecycle transitions.

Each transition takes the current records and a validated instruction,
checks every precondition before building anything, and returns the full set
of records it touched plus exactly one event. Nothing here performs I/O; the
ledger service loads records and commits the result atomically.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional

from loan_ledger.common.amortization import compute_installment, loan_end_timestamp, validate_terms
from loan_ledger.common.lateness import assess_payment, ensure_payable
from loan_ledger.common.numeric_policy import U16, U64, checked_add, checked_sub
from loan_ledger.common.protocol_constants import MAX_NAME_LEN, MAX_PAYMENT_HASH_LEN
from loan_ledger.core.config import DEFAULT_POLICY, LedgerPolicy
from loan_ledger.models.addresses import loan_address
from loan_ledger.models.base import BaseRecordModel, utf8_length
from loan_ledger.models.enums import EmploymentType, LoanStatus, RiskLevel
from loan_ledger.models.events import (
    FineWaived,
    LedgerEvent,
    LoanCompleted,
    LoanCreated,
    LoanDefaulted,
    PaymentRecorded,
    ProgramInitialized,
    ProgramPauseUpdated,
    RiskScoreUpdated,
    UserProfileUpdated,
    UserRegistered,
)
from loan_ledger.models.exceptions import ErrorKind, LoanProgramError
from loan_ledger.models.loans import Loan
from loan_ledger.models.payments import PaymentRecord
from loan_ledger.models.program_state import ProgramState
from loan_ledger.models.risk_profiles import RiskProfile
from loan_ledger.models.users import UserProfile

from .credit_risk_engine import apply_assessment, apply_completion, apply_default, apply_payment_outcome, assess_risk


ROLE_PROGRAM_STATE = "program_state"
ROLE_USER_PROFILE = "user_profile"
ROLE_LOAN = "loan"
ROLE_PAYMENT_RECORD = "payment_record"
ROLE_RISK_PROFILE = "risk_profile"


@dataclass(frozen=True)
class TransitionResult:
    """Records written by a transition, keyed by role, and its event.

    ``created`` names the roles whose records did not exist before.
    """

    records: Dict[str, BaseRecordModel]
    event: LedgerEvent
    created: FrozenSet[str] = field(default_factory=frozenset)


def _require_program(program: Optional[ProgramState]) -> ProgramState:
    if program is None:
        raise LoanProgramError(ErrorKind.UNAUTHORIZED, "program is not initialized")
    return program


def _require_admin(program: ProgramState, caller: str) -> None:
    if caller != program.authority:
        raise LoanProgramError(ErrorKind.UNAUTHORIZED, "caller is not the program administrator")


def _require_borrower_or_admin(program: ProgramState, borrower: str, caller: str) -> None:
    if caller not in (borrower, program.authority):
        raise LoanProgramError(ErrorKind.UNAUTHORIZED, "caller is neither the borrower nor the administrator")


def _require_not_paused(program: ProgramState) -> None:
    if program.paused:
        raise LoanProgramError(ErrorKind.PROGRAM_PAUSED)


def _require_profile(profile: Optional[UserProfile]) -> UserProfile:
    if profile is None:
        raise LoanProgramError(ErrorKind.USER_NOT_FOUND)
    return profile


def _require_loan(loan: Optional[Loan]) -> Loan:
    if loan is None:
        raise LoanProgramError(ErrorKind.LOAN_NOT_FOUND)
    return loan


def _require_active(loan: Loan) -> None:
    if loan.status != LoanStatus.ACTIVE:
        raise LoanProgramError(ErrorKind.LOAN_NOT_ACTIVE, "loan {0} is {1}".format(loan.loan_id, loan.status.value))


def _require_owned_loan(loan: Loan, profile: UserProfile) -> None:
    if loan.user != profile.authority:
        raise LoanProgramError(ErrorKind.UNAUTHORIZED, "loan does not belong to the supplied profile")


def initialize(
    existing: Optional[ProgramState],
    caller: str,
    fee_percentage: int,
    now: int,
    policy: LedgerPolicy = DEFAULT_POLICY,
) -> TransitionResult:
    """Create the program singleton with ``caller`` as administrator."""
    if existing is not None:
        raise LoanProgramError(ErrorKind.UNAUTHORIZED, "program is already initialized")
    if not 0 <= fee_percentage <= policy.max_fee_percentage_bps:
        raise LoanProgramError(
            ErrorKind.INVALID_INTEREST_RATE,
            "fee {0} bps exceeds {1}".format(fee_percentage, policy.max_fee_percentage_bps),
        )
    program = ProgramState.from_record(dict(authority=caller, fee_percentage=fee_percentage))
    return TransitionResult(
        records={ROLE_PROGRAM_STATE: program},
        event=ProgramInitialized(authority=caller, fee_percentage=fee_percentage, timestamp=now),
        created=frozenset({ROLE_PROGRAM_STATE}),
    )


def register_user(
    program: Optional[ProgramState],
    existing: Optional[UserProfile],
    caller: str,
    full_name: str,
    monthly_income: int,
    employment_type: EmploymentType,
    now: int,
) -> TransitionResult:
    """Create a borrower profile for ``caller``."""
    program = _require_program(program)
    _require_not_paused(program)
    if utf8_length(full_name) > MAX_NAME_LEN:
        raise LoanProgramError(ErrorKind.NAME_TOO_LONG, "name exceeds {0} bytes".format(MAX_NAME_LEN))
    if not full_name.strip():
        raise LoanProgramError(ErrorKind.INVALID_STRING_FORMAT, "name must not be blank")
    if monthly_income <= 0:
        raise LoanProgramError(ErrorKind.INCOME_TOO_LOW)
    if existing is not None:
        raise LoanProgramError(ErrorKind.USER_ALREADY_REGISTERED)

    employment_type = EmploymentType(employment_type)
    profile = UserProfile.from_record(
        dict(
            authority=caller,
            full_name=full_name,
            monthly_income=monthly_income,
            employment_type=employment_type,
            registration_timestamp=now,
            last_updated=now,
        )
    )
    updated_program = program.evolve(total_users=checked_add(program.total_users, 1, U64))
    return TransitionResult(
        records={ROLE_PROGRAM_STATE: updated_program, ROLE_USER_PROFILE: profile},
        event=UserRegistered(
            user=caller,
            full_name=full_name,
            monthly_income=monthly_income,
            employment_type=employment_type,
            timestamp=now,
        ),
        created=frozenset({ROLE_USER_PROFILE}),
    )


def update_user_profile(
    profile: Optional[UserProfile],
    caller: str,
    now: int,
    monthly_income: Optional[int] = None,
    employment_type: Optional[EmploymentType] = None,
) -> TransitionResult:
    """Change the income and/or employment type of the caller's own profile."""
    profile = _require_profile(profile)
    if caller != profile.authority:
        raise LoanProgramError(ErrorKind.UNAUTHORIZED, "profile belongs to another user")

    changes = {"last_updated": now}
    if monthly_income is not None:
        if monthly_income <= 0:
            raise LoanProgramError(ErrorKind.INCOME_TOO_LOW)
        changes["monthly_income"] = monthly_income
    if employment_type is not None:
        changes["employment_type"] = EmploymentType(employment_type)

    updated = profile.evolve(**changes)
    return TransitionResult(
        records={ROLE_USER_PROFILE: updated},
        event=UserProfileUpdated(
            user=updated.authority,
            monthly_income=updated.monthly_income,
            employment_type=updated.employment_type,
            timestamp=now,
        ),
    )


def _check_underwriting(profile: UserProfile, policy: LedgerPolicy) -> None:
    if policy.min_credit_score is not None and profile.credit_score < policy.min_credit_score:
        raise LoanProgramError(
            ErrorKind.LOW_CREDIT_SCORE,
            "score {0} below {1}".format(profile.credit_score, policy.min_credit_score),
        )
    if profile.risk_level in policy.blocked_risk_levels:
        raise LoanProgramError(ErrorKind.HIGH_RISK_USER, "risk level {0}".format(profile.risk_level.value))


def create_loan(
    program: Optional[ProgramState],
    profile: Optional[UserProfile],
    caller: str,
    principal_amount: int,
    interest_rate: int,
    tenure_months: int,
    now: int,
    start_timestamp: Optional[int] = None,
    policy: LedgerPolicy = DEFAULT_POLICY,
) -> TransitionResult:
    """Originate an amortizing loan for the borrower owning ``profile``."""
    program = _require_program(program)
    _require_admin(program, caller)
    _require_not_paused(program)
    profile = _require_profile(profile)
    validate_terms(principal_amount, interest_rate, tenure_months, policy.terms)
    if profile.active_loans > 0:
        raise LoanProgramError(ErrorKind.ACTIVE_LOAN_EXISTS)
    _check_underwriting(profile, policy)

    start = now if start_timestamp is None else start_timestamp
    monthly_installment, total_amount = compute_installment(
        principal_amount, interest_rate, tenure_months, policy.amortization_mode
    )
    end = loan_end_timestamp(start, tenure_months)

    loan = Loan.from_record(
        dict(
            user=profile.authority,
            loan_id=program.total_loans,
            principal_amount=principal_amount,
            interest_rate=interest_rate,
            tenure_months=tenure_months,
            monthly_installment=monthly_installment,
            total_amount=total_amount,
            outstanding_balance=total_amount,
            start_timestamp=start,
            end_timestamp=end,
            created_timestamp=now,
        )
    )
    updated_profile = profile.evolve(
        total_loans=checked_add(profile.total_loans, 1, U16),
        active_loans=profile.active_loans + 1,
        total_borrowed=checked_add(profile.total_borrowed, principal_amount, U64),
        last_updated=now,
    )
    updated_program = program.evolve(
        total_loans=checked_add(program.total_loans, 1, U64),
        total_volume=checked_add(program.total_volume, principal_amount, U64),
    )
    return TransitionResult(
        records={
            ROLE_PROGRAM_STATE: updated_program,
            ROLE_USER_PROFILE: updated_profile,
            ROLE_LOAN: loan,
        },
        event=LoanCreated(
            loan_id=loan.loan_id,
            user=loan.user,
            principal_amount=principal_amount,
            interest_rate=interest_rate,
            tenure_months=tenure_months,
            monthly_installment=monthly_installment,
            total_amount=total_amount,
            start_timestamp=start,
            end_timestamp=end,
        ),
        created=frozenset({ROLE_LOAN}),
    )


def record_payment(
    program: Optional[ProgramState],
    loan: Optional[Loan],
    profile: Optional[UserProfile],
    existing: Optional[PaymentRecord],
    caller: str,
    installment_number: int,
    amount: int,
    payment_hash: str,
    now: int,
    policy: LedgerPolicy = DEFAULT_POLICY,
) -> TransitionResult:
    """Record the payment of one installment and any late fine it carries."""
    program = _require_program(program)
    loan = _require_loan(loan)
    profile = _require_profile(profile)
    _require_owned_loan(loan, profile)
    _require_borrower_or_admin(program, loan.user, caller)
    _require_active(loan)
    if not 1 <= installment_number <= loan.tenure_months:
        raise LoanProgramError(
            ErrorKind.INVALID_INSTALLMENT_NUMBER,
            "installment {0} outside [1, {1}]".format(installment_number, loan.tenure_months),
        )
    if amount <= 0:
        raise LoanProgramError(ErrorKind.INVALID_PAYMENT_AMOUNT)
    if utf8_length(payment_hash) > MAX_PAYMENT_HASH_LEN:
        raise LoanProgramError(
            ErrorKind.INVALID_STRING_FORMAT,
            "payment proof exceeds {0} bytes".format(MAX_PAYMENT_HASH_LEN),
        )
    if existing is not None:
        raise LoanProgramError(ErrorKind.INSTALLMENT_ALREADY_PAID, "installment {0}".format(installment_number))
    ensure_payable(loan.start_timestamp, installment_number, now, policy.allow_prepayment)

    assessment = assess_payment(
        loan.start_timestamp,
        installment_number,
        loan.monthly_installment,
        now,
        policy.fines,
    )
    total_due = checked_add(loan.monthly_installment, assessment.fine_amount, U64)
    if amount < total_due:
        raise LoanProgramError(
            ErrorKind.INSUFFICIENT_PAYMENT,
            "amount {0} below installment plus fine {1}".format(amount, total_due),
        )

    principal_portion = min(amount - assessment.fine_amount, loan.outstanding_balance)
    address = loan_address(loan.user, loan.loan_id)
    payment = PaymentRecord.from_record(
        dict(
            loan=address,
            user=loan.user,
            installment_number=installment_number,
            amount=amount,
            fine_amount=assessment.fine_amount,
            payment_timestamp=now,
            payment_hash=payment_hash,
            on_time=assessment.on_time,
            days_late=assessment.days_late,
        )
    )
    updated_loan = loan.evolve(
        outstanding_balance=checked_sub(loan.outstanding_balance, principal_portion, U64),
        total_repaid=checked_add(loan.total_repaid, amount, U64),
        total_fines=checked_add(loan.total_fines, assessment.fine_amount, U64),
    )
    updated_profile = apply_payment_outcome(profile, assessment.on_time, amount, now, policy.scoring)
    return TransitionResult(
        records={
            ROLE_LOAN: updated_loan,
            ROLE_USER_PROFILE: updated_profile,
            ROLE_PAYMENT_RECORD: payment,
        },
        event=PaymentRecorded(
            loan=address,
            user=loan.user,
            installment_number=installment_number,
            amount=amount,
            fine_amount=assessment.fine_amount,
            payment_timestamp=now,
            on_time=assessment.on_time,
            days_late=assessment.days_late,
        ),
        created=frozenset({ROLE_PAYMENT_RECORD}),
    )


def mark_loan_defaulted(
    program: Optional[ProgramState],
    loan: Optional[Loan],
    profile: Optional[UserProfile],
    caller: str,
    now: int,
    policy: LedgerPolicy = DEFAULT_POLICY,
) -> TransitionResult:
    """Close an active loan with an unpaid balance as defaulted."""
    program = _require_program(program)
    _require_admin(program, caller)
    loan = _require_loan(loan)
    profile = _require_profile(profile)
    _require_owned_loan(loan, profile)
    _require_active(loan)
    if loan.outstanding_balance == 0:
        raise LoanProgramError(ErrorKind.LOAN_ALREADY_COMPLETED, "loan {0} has no outstanding balance".format(loan.loan_id))

    updated_loan = loan.evolve(status=LoanStatus.DEFAULTED, defaulted_timestamp=now)
    updated_profile = apply_default(profile, now, policy.scoring)
    return TransitionResult(
        records={ROLE_LOAN: updated_loan, ROLE_USER_PROFILE: updated_profile},
        event=LoanDefaulted(
            loan_id=loan.loan_id,
            user=loan.user,
            outstanding_balance=loan.outstanding_balance,
            total_fines=loan.total_fines,
            defaulted_timestamp=now,
        ),
    )


def mark_loan_completed(
    program: Optional[ProgramState],
    loan: Optional[Loan],
    profile: Optional[UserProfile],
    caller: str,
    now: int,
    policy: LedgerPolicy = DEFAULT_POLICY,
) -> TransitionResult:
    """Close a fully repaid loan."""
    program = _require_program(program)
    loan = _require_loan(loan)
    profile = _require_profile(profile)
    _require_owned_loan(loan, profile)
    _require_borrower_or_admin(program, loan.user, caller)
    _require_active(loan)
    if loan.outstanding_balance != 0:
        raise LoanProgramError(
            ErrorKind.INSUFFICIENT_PAYMENT,
            "outstanding balance {0} remains".format(loan.outstanding_balance),
        )

    updated_loan = loan.evolve(status=LoanStatus.COMPLETED, completed_timestamp=now)
    updated_profile = apply_completion(profile, now, policy.scoring)
    return TransitionResult(
        records={ROLE_LOAN: updated_loan, ROLE_USER_PROFILE: updated_profile},
        event=LoanCompleted(
            loan_id=loan.loan_id,
            user=loan.user,
            total_repaid=loan.total_repaid,
            completed_timestamp=now,
        ),
    )


def waive_fine(
    program: Optional[ProgramState],
    loan: Optional[Loan],
    payment: Optional[PaymentRecord],
    caller: str,
    waived_amount: int,
    now: int,
) -> TransitionResult:
    """Forgive part of the fine charged on one paid installment.

    Only ``total_fines`` moves; the principal balance is unaffected because
    fines never reduced it.
    """
    program = _require_program(program)
    _require_admin(program, caller)
    loan = _require_loan(loan)
    if payment is None:
        raise LoanProgramError(ErrorKind.INVALID_INSTALLMENT_NUMBER, "installment has no payment record")
    if payment.loan != loan_address(loan.user, loan.loan_id):
        raise LoanProgramError(ErrorKind.INVALID_INSTALLMENT_NUMBER, "payment record belongs to another loan")
    if waived_amount <= 0:
        raise LoanProgramError(ErrorKind.INVALID_PAYMENT_AMOUNT, "waived amount must be positive")
    if waived_amount > payment.waivable_fine:
        raise LoanProgramError(
            ErrorKind.INVALID_PAYMENT_AMOUNT,
            "waived amount {0} exceeds remaining fine {1}".format(waived_amount, payment.waivable_fine),
        )
    if waived_amount > loan.total_fines:
        raise LoanProgramError(
            ErrorKind.INVALID_PAYMENT_AMOUNT,
            "waived amount {0} exceeds loan fines {1}".format(waived_amount, loan.total_fines),
        )

    updated_loan = loan.evolve(total_fines=checked_sub(loan.total_fines, waived_amount, U64))
    updated_payment = payment.evolve(fine_waived=checked_add(payment.fine_waived, waived_amount, U64))
    return TransitionResult(
        records={ROLE_LOAN: updated_loan, ROLE_PAYMENT_RECORD: updated_payment},
        event=FineWaived(
            loan=payment.loan,
            user=loan.user,
            installment_number=payment.installment_number,
            waived_amount=waived_amount,
            waived_by=caller,
            timestamp=now,
        ),
    )


def update_risk_score(
    program: Optional[ProgramState],
    profile: Optional[UserProfile],
    existing: Optional[RiskProfile],
    caller: str,
    risk_score: int,
    risk_level: RiskLevel,
    default_probability: int,
    now: int,
    policy: LedgerPolicy = DEFAULT_POLICY,
) -> TransitionResult:
    """Overwrite a borrower's score and tier with an external assessment."""
    program = _require_program(program)
    _require_admin(program, caller)
    profile = _require_profile(profile)
    assessment = assess_risk(risk_score, risk_level, default_probability, profile.monthly_income, policy.scoring)

    updated_profile, risk_profile = apply_assessment(profile, existing, assessment, now)
    return TransitionResult(
        records={ROLE_USER_PROFILE: updated_profile, ROLE_RISK_PROFILE: risk_profile},
        event=RiskScoreUpdated(
            user=profile.authority,
            old_score=profile.credit_score,
            new_score=assessment.risk_score,
            risk_level=assessment.risk_level,
            default_probability=default_probability,
            timestamp=now,
        ),
        created=frozenset() if existing is not None else frozenset({ROLE_RISK_PROFILE}),
    )


def set_paused(program: Optional[ProgramState], caller: str, paused: bool, now: int) -> TransitionResult:
    program = _require_program(program)
    _require_admin(program, caller)
    return TransitionResult(
        records={ROLE_PROGRAM_STATE: program.evolve(paused=bool(paused))},
        event=ProgramPauseUpdated(authority=caller, paused=bool(paused), timestamp=now),
    )
