"""Ledger service wiring transitions to the record store, clock and event log."""

from __future__ import annotations

import logging
from threading import RLock
from typing import Callable, Dict, List, Optional

from loan_ledger.common.amortization import build_schedule
from loan_ledger.common.lateness import InstallmentStatus, outstanding_installment
from loan_ledger.core.config import DEFAULT_POLICY, LedgerPolicy
from loan_ledger.models.addresses import (
    loan_address,
    payment_address,
    program_state_address,
    risk_profile_address,
    user_profile_address,
)
from loan_ledger.models.base import BaseRecordModel, unix_now
from loan_ledger.models.enums import EmploymentType, RiskLevel
from loan_ledger.models.events import EventEnvelope
from loan_ledger.models.exceptions import (
    ErrorKind,
    LoanProgramError,
    ModelValidationError,
    RecordExistsError,
    RecordNotFoundError,
)
from loan_ledger.models.loans import Loan
from loan_ledger.models.payments import PaymentRecord
from loan_ledger.models.program_state import ProgramState
from loan_ledger.models.repositories import LedgerRecordStore, RecordBatch
from loan_ledger.models.risk_profiles import RiskProfile
from loan_ledger.models.users import UserProfile

from . import loan_lifecycle
from .loan_lifecycle import (
    ROLE_LOAN,
    ROLE_PAYMENT_RECORD,
    ROLE_PROGRAM_STATE,
    ROLE_RISK_PROFILE,
    ROLE_USER_PROFILE,
    TransitionResult,
)


logger = logging.getLogger(__name__)

Clock = Callable[[], int]

_EXISTS_KINDS: Dict[str, ErrorKind] = {
    ROLE_PROGRAM_STATE: ErrorKind.UNAUTHORIZED,
    ROLE_USER_PROFILE: ErrorKind.USER_ALREADY_REGISTERED,
    ROLE_LOAN: ErrorKind.ACTIVE_LOAN_EXISTS,
    ROLE_PAYMENT_RECORD: ErrorKind.INSTALLMENT_ALREADY_PAID,
    ROLE_RISK_PROFILE: ErrorKind.UNAUTHORIZED,
}

_MISSING_KINDS: Dict[str, ErrorKind] = {
    ROLE_PROGRAM_STATE: ErrorKind.UNAUTHORIZED,
    ROLE_USER_PROFILE: ErrorKind.USER_NOT_FOUND,
    ROLE_LOAN: ErrorKind.LOAN_NOT_FOUND,
    ROLE_PAYMENT_RECORD: ErrorKind.INVALID_INSTALLMENT_NUMBER,
    ROLE_RISK_PROFILE: ErrorKind.USER_NOT_FOUND,
}


def address_for(role: str, record: BaseRecordModel) -> str:
    """Return the address a record of ``role`` is stored at."""
    if role == ROLE_PROGRAM_STATE:
        return program_state_address()
    if role == ROLE_USER_PROFILE:
        return user_profile_address(record.authority)
    if role == ROLE_LOAN:
        return loan_address(record.user, record.loan_id)
    if role == ROLE_PAYMENT_RECORD:
        return payment_address(record.loan, record.installment_number)
    if role == ROLE_RISK_PROFILE:
        return risk_profile_address(record.user)
    raise ValueError("Unknown record role '{0}'".format(role))


class LoanLedgerService:
    """Runs ledger transitions against a record store.

    Every call re-reads current state, runs one pure transition and commits
    the touched records with the event as one batch. Calls are serialized so
    that the read and the commit observe the same state.
    """

    def __init__(
        self,
        store: LedgerRecordStore,
        policy: LedgerPolicy = DEFAULT_POLICY,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store = store
        self._policy = policy
        self._clock = clock or unix_now
        self._lock = RLock()

    @property
    def policy(self) -> LedgerPolicy:
        return self._policy

    def _program(self) -> Optional[ProgramState]:
        return self._store.find(program_state_address(), ProgramState)

    def _profile(self, user: str) -> Optional[UserProfile]:
        return self._store.find(user_profile_address(user), UserProfile)

    def _loan(self, user: str, loan_id: int) -> Optional[Loan]:
        return self._store.find(loan_address(user, loan_id), Loan)

    def _payment(self, user: str, loan_id: int, installment_number: int) -> Optional[PaymentRecord]:
        return self._store.find(payment_address(loan_address(user, loan_id), installment_number), PaymentRecord)

    def _risk_profile(self, user: str) -> Optional[RiskProfile]:
        return self._store.find(risk_profile_address(user), RiskProfile)

    def _commit(self, result: TransitionResult, caller: str) -> List[EventEnvelope]:
        batch = RecordBatch(caller=caller)
        roles_by_address = {}
        for role, record in result.records.items():
            address = address_for(role, record)
            roles_by_address[address] = role
            if role in result.created:
                batch.create(address, record, role=role)
            else:
                batch.update(address, record, role=role)
        batch.emit(result.event)
        try:
            return self._store.apply(batch)
        except RecordExistsError as exc:
            role = roles_by_address.get(exc.address)
            raise LoanProgramError(_EXISTS_KINDS.get(role, ErrorKind.UNAUTHORIZED), str(exc))
        except RecordNotFoundError as exc:
            role = roles_by_address.get(exc.address)
            raise LoanProgramError(_MISSING_KINDS.get(role, ErrorKind.UNAUTHORIZED), str(exc))

    def _execute(
        self,
        operation: str,
        caller: str,
        transition: Callable[[int], TransitionResult],
    ) -> TransitionResult:
        with self._lock:
            now = self._clock()
            try:
                result = transition(now)
                self._commit(result, caller)
            except LoanProgramError as exc:
                logger.warning(
                    "%s rejected caller=%s kind=%s detail=%s",
                    operation,
                    caller,
                    exc.kind.value,
                    exc.detail,
                )
                raise
            except ModelValidationError as exc:
                logger.warning("%s rejected caller=%s invalid record: %s", operation, caller, exc)
                raise
        logger.info("%s committed caller=%s event=%s", operation, caller, result.event.event_type)
        return result

    def initialize(self, caller: str, fee_percentage: int) -> TransitionResult:
        return self._execute(
            "Initialize",
            caller,
            lambda now: loan_lifecycle.initialize(self._program(), caller, fee_percentage, now, self._policy),
        )

    def set_paused(self, caller: str, paused: bool) -> TransitionResult:
        return self._execute(
            "SetPaused",
            caller,
            lambda now: loan_lifecycle.set_paused(self._program(), caller, paused, now),
        )

    def register_user(
        self,
        caller: str,
        full_name: str,
        monthly_income: int,
        employment_type: EmploymentType,
    ) -> TransitionResult:
        return self._execute(
            "RegisterUser",
            caller,
            lambda now: loan_lifecycle.register_user(
                self._program(),
                self._profile(caller),
                caller,
                full_name,
                monthly_income,
                employment_type,
                now,
            ),
        )

    def update_user_profile(
        self,
        caller: str,
        monthly_income: Optional[int] = None,
        employment_type: Optional[EmploymentType] = None,
    ) -> TransitionResult:
        return self._execute(
            "UpdateUserProfile",
            caller,
            lambda now: loan_lifecycle.update_user_profile(
                self._profile(caller),
                caller,
                now,
                monthly_income=monthly_income,
                employment_type=employment_type,
            ),
        )

    def create_loan(
        self,
        caller: str,
        user: str,
        principal_amount: int,
        interest_rate: int,
        tenure_months: int,
        start_timestamp: Optional[int] = None,
    ) -> TransitionResult:
        return self._execute(
            "CreateLoan",
            caller,
            lambda now: loan_lifecycle.create_loan(
                self._program(),
                self._profile(user),
                caller,
                principal_amount,
                interest_rate,
                tenure_months,
                now,
                start_timestamp=start_timestamp,
                policy=self._policy,
            ),
        )

    def record_payment(
        self,
        caller: str,
        user: str,
        loan_id: int,
        installment_number: int,
        amount: int,
        payment_hash: str = "",
    ) -> TransitionResult:
        return self._execute(
            "RecordPayment",
            caller,
            lambda now: loan_lifecycle.record_payment(
                self._program(),
                self._loan(user, loan_id),
                self._profile(user),
                self._payment(user, loan_id, installment_number) if 0 < installment_number < 256 else None,
                caller,
                installment_number,
                amount,
                payment_hash,
                now,
                self._policy,
            ),
        )

    def mark_loan_defaulted(self, caller: str, user: str, loan_id: int) -> TransitionResult:
        return self._execute(
            "MarkLoanDefaulted",
            caller,
            lambda now: loan_lifecycle.mark_loan_defaulted(
                self._program(),
                self._loan(user, loan_id),
                self._profile(user),
                caller,
                now,
                self._policy,
            ),
        )

    def mark_loan_completed(self, caller: str, user: str, loan_id: int) -> TransitionResult:
        return self._execute(
            "MarkLoanCompleted",
            caller,
            lambda now: loan_lifecycle.mark_loan_completed(
                self._program(),
                self._loan(user, loan_id),
                self._profile(user),
                caller,
                now,
                self._policy,
            ),
        )

    def waive_fine(
        self,
        caller: str,
        user: str,
        loan_id: int,
        installment_number: int,
        waived_amount: int,
    ) -> TransitionResult:
        return self._execute(
            "WaiveFine",
            caller,
            lambda now: loan_lifecycle.waive_fine(
                self._program(),
                self._loan(user, loan_id),
                self._payment(user, loan_id, installment_number) if 0 < installment_number < 256 else None,
                caller,
                waived_amount,
                now,
            ),
        )

    def update_risk_score(
        self,
        caller: str,
        user: str,
        risk_score: int,
        risk_level: RiskLevel,
        default_probability: int,
    ) -> TransitionResult:
        return self._execute(
            "UpdateRiskScore",
            caller,
            lambda now: loan_lifecycle.update_risk_score(
                self._program(),
                self._profile(user),
                self._risk_profile(user),
                caller,
                risk_score,
                risk_level,
                default_probability,
                now,
                self._policy,
            ),
        )

    def get_program_state(self) -> ProgramState:
        program = self._program()
        if program is None:
            raise LoanProgramError(ErrorKind.UNAUTHORIZED, "program is not initialized")
        return program

    def get_user_profile(self, user: str) -> UserProfile:
        profile = self._profile(user)
        if profile is None:
            raise LoanProgramError(ErrorKind.USER_NOT_FOUND)
        return profile

    def is_user_registered(self, user: str) -> bool:
        return self._store.exists(user_profile_address(user))

    def get_credit_score(self, user: str) -> int:
        profile = self.get_user_profile(user)
        logger.info("Credit score for %s: %s", profile.full_name, profile.credit_score)
        return profile.credit_score

    def get_loan(self, user: str, loan_id: int) -> Loan:
        loan = self._loan(user, loan_id)
        if loan is None:
            raise LoanProgramError(ErrorKind.LOAN_NOT_FOUND)
        return loan

    def get_loan_schedule(self, user: str, loan_id: int) -> List[InstallmentStatus]:
        """List every installment with its paid state or current amount due.

        Unpaid installments are assessed at the service clock, so a late row
        reports the fine a payment made now must include.
        """
        loan = self.get_loan(user, loan_id)
        now = self._clock()
        rows = []
        for entry in build_schedule(loan.start_timestamp, loan.tenure_months, loan.monthly_installment):
            payment = self._payment(user, loan_id, entry.installment_number)
            if payment is None:
                rows.append(
                    outstanding_installment(
                        loan.start_timestamp,
                        entry.installment_number,
                        loan.monthly_installment,
                        now,
                        self._policy.fines,
                    )
                )
                continue
            rows.append(
                InstallmentStatus(
                    installment_number=entry.installment_number,
                    due_timestamp=entry.due_timestamp,
                    amount=entry.amount,
                    paid=True,
                    on_time=payment.on_time,
                    days_late=payment.days_late,
                    fine_amount=payment.fine_amount,
                    total_due=0,
                )
            )
        return rows

    def get_payment_record(self, user: str, loan_id: int, installment_number: int) -> PaymentRecord:
        payment = self._payment(user, loan_id, installment_number) if 0 < installment_number < 256 else None
        if payment is None:
            raise LoanProgramError(
                ErrorKind.INVALID_INSTALLMENT_NUMBER,
                "no payment recorded for installment {0}".format(installment_number),
            )
        return payment

    def get_risk_profile(self, user: str) -> RiskProfile:
        risk_profile = self._risk_profile(user)
        if risk_profile is None:
            raise LoanProgramError(ErrorKind.USER_NOT_FOUND, "no risk profile recorded")
        return risk_profile

    def list_events(self, since: int = 0, limit: Optional[int] = None) -> List[EventEnvelope]:
        return self._store.list_events(since=since, limit=limit)
