"""Domain events emitted by ledger transitions."""

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .base import Counter8, Counter16, Identity, Money, PercentageBps, Sequence64, UnixTimestamp
from .enums import EmploymentType, RiskLevel


class LedgerEvent(BaseModel):
    """Base class for events; ``event_type`` names the concrete event."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    event_type: str


class ProgramInitialized(LedgerEvent):
    event_type: Literal["ProgramInitialized"] = "ProgramInitialized"
    authority: Identity
    fee_percentage: PercentageBps
    timestamp: UnixTimestamp


class ProgramPauseUpdated(LedgerEvent):
    event_type: Literal["ProgramPauseUpdated"] = "ProgramPauseUpdated"
    authority: Identity
    paused: bool
    timestamp: UnixTimestamp


class UserRegistered(LedgerEvent):
    event_type: Literal["UserRegistered"] = "UserRegistered"
    user: Identity
    full_name: str
    monthly_income: Money
    employment_type: EmploymentType
    timestamp: UnixTimestamp


class UserProfileUpdated(LedgerEvent):
    event_type: Literal["UserProfileUpdated"] = "UserProfileUpdated"
    user: Identity
    monthly_income: Money
    employment_type: EmploymentType
    timestamp: UnixTimestamp


class LoanCreated(LedgerEvent):
    event_type: Literal["LoanCreated"] = "LoanCreated"
    loan_id: Sequence64
    user: Identity
    principal_amount: Money
    interest_rate: PercentageBps
    tenure_months: Counter8
    monthly_installment: Money
    total_amount: Money
    start_timestamp: UnixTimestamp
    end_timestamp: UnixTimestamp


class PaymentRecorded(LedgerEvent):
    event_type: Literal["PaymentRecorded"] = "PaymentRecorded"
    loan: Identity
    user: Identity
    installment_number: Counter8
    amount: Money
    fine_amount: Money
    payment_timestamp: UnixTimestamp
    on_time: bool
    days_late: Counter16


class RiskScoreUpdated(LedgerEvent):
    event_type: Literal["RiskScoreUpdated"] = "RiskScoreUpdated"
    user: Identity
    old_score: Counter16
    new_score: Counter16
    risk_level: RiskLevel
    default_probability: PercentageBps
    timestamp: UnixTimestamp


class LoanDefaulted(LedgerEvent):
    event_type: Literal["LoanDefaulted"] = "LoanDefaulted"
    loan_id: Sequence64
    user: Identity
    outstanding_balance: Money
    total_fines: Money
    defaulted_timestamp: UnixTimestamp


class LoanCompleted(LedgerEvent):
    event_type: Literal["LoanCompleted"] = "LoanCompleted"
    loan_id: Sequence64
    user: Identity
    total_repaid: Money
    completed_timestamp: UnixTimestamp


class FineWaived(LedgerEvent):
    event_type: Literal["FineWaived"] = "FineWaived"
    loan: Identity
    user: Identity
    installment_number: Counter8
    waived_amount: Money
    waived_by: Identity
    timestamp: UnixTimestamp


AnyLedgerEvent = Union[
    ProgramInitialized,
    ProgramPauseUpdated,
    UserRegistered,
    UserProfileUpdated,
    LoanCreated,
    PaymentRecorded,
    RiskScoreUpdated,
    LoanDefaulted,
    LoanCompleted,
    FineWaived,
]


class EventEnvelope(BaseModel):
    """Event as stored in the ledger's append-only log."""

    model_config = ConfigDict(frozen=True)

    sequence: Sequence64
    event: AnyLedgerEvent = Field(..., discriminator="event_type")
    caller: Optional[Identity] = Field(default=None)
