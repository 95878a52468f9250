"""Public model package exports for the loan ledger."""

from .addresses import (
    derive_address,
    loan_address,
    payment_address,
    program_state_address,
    risk_profile_address,
    user_profile_address,
)
from .base import BaseRecordModel, Identity, Money, PercentageBps, UnixTimestamp
from .enums import AmortizationMode, EmploymentType, LoanStatus, RiskLevel
from .events import (
    EventEnvelope,
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
from .exceptions import (
    ErrorKind,
    LoanProgramError,
    ModelError,
    ModelValidationError,
    RecordExistsError,
    RecordNotFoundError,
)
from .loans import Loan
from .payments import PaymentRecord
from .program_state import ProgramState
from .repositories import LedgerRecordStore, RecordBatch, RecordWrite
from .risk_profiles import RiskProfile
from .users import UserProfile

__all__ = [
    "BaseRecordModel",
    "Identity",
    "Money",
    "PercentageBps",
    "UnixTimestamp",
    "ProgramState",
    "UserProfile",
    "Loan",
    "PaymentRecord",
    "RiskProfile",
    "AmortizationMode",
    "EmploymentType",
    "LoanStatus",
    "RiskLevel",
    "LedgerEvent",
    "EventEnvelope",
    "ProgramInitialized",
    "ProgramPauseUpdated",
    "UserRegistered",
    "UserProfileUpdated",
    "LoanCreated",
    "PaymentRecorded",
    "RiskScoreUpdated",
    "LoanDefaulted",
    "LoanCompleted",
    "FineWaived",
    "ErrorKind",
    "LoanProgramError",
    "ModelError",
    "ModelValidationError",
    "RecordExistsError",
    "RecordNotFoundError",
    "LedgerRecordStore",
    "RecordBatch",
    "RecordWrite",
    "derive_address",
    "program_state_address",
    "user_profile_address",
    "loan_address",
    "payment_address",
    "risk_profile_address",
]
