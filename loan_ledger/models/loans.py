"""Loan record with amortized terms and running balances."""

import logging
from typing import Optional

from pydantic import Field, field_validator, model_validator

from loan_ledger.common.protocol_constants import MAX_IDENTITY_LEN

from .base import (
    BaseRecordModel,
    Counter8,
    Identity,
    Money,
    PercentageBps,
    Sequence64,
    UnixTimestamp,
    require_utf8_max,
)
from .codec import (
    EnumCodec,
    I64_CODEC,
    IDENTITY_CODEC,
    OPTIONAL_I64_CODEC,
    U8_CODEC,
    U16_CODEC,
    U64_CODEC,
)
from .enums import LoanStatus


logger = logging.getLogger(__name__)


class Loan(BaseRecordModel):
    """Represents one amortizing loan issued to a borrower."""

    ACCOUNT_NAME = "Loan"
    LAYOUT = (
        ("user", IDENTITY_CODEC),
        ("loan_id", U64_CODEC),
        ("principal_amount", U64_CODEC),
        ("interest_rate", U16_CODEC),
        ("tenure_months", U8_CODEC),
        ("monthly_installment", U64_CODEC),
        ("total_amount", U64_CODEC),
        ("outstanding_balance", U64_CODEC),
        ("total_repaid", U64_CODEC),
        ("total_fines", U64_CODEC),
        ("start_timestamp", I64_CODEC),
        ("end_timestamp", I64_CODEC),
        ("status", EnumCodec(LoanStatus)),
        ("created_timestamp", I64_CODEC),
        ("completed_timestamp", OPTIONAL_I64_CODEC),
        ("defaulted_timestamp", OPTIONAL_I64_CODEC),
    )

    user: Identity
    loan_id: Sequence64 = Field(...)
    principal_amount: Money = Field(...)
    interest_rate: PercentageBps = Field(...)
    tenure_months: Counter8 = Field(...)
    monthly_installment: Money = Field(...)
    total_amount: Money = Field(...)

    outstanding_balance: Money = Field(...)
    total_repaid: Money = Field(default=0)
    total_fines: Money = Field(default=0)

    start_timestamp: UnixTimestamp = Field(...)
    end_timestamp: UnixTimestamp = Field(...)
    status: LoanStatus = Field(default=LoanStatus.ACTIVE)
    created_timestamp: UnixTimestamp = Field(...)
    completed_timestamp: Optional[UnixTimestamp] = Field(default=None)
    defaulted_timestamp: Optional[UnixTimestamp] = Field(default=None)

    @field_validator("user")
    @classmethod
    def _user_fits(cls, value: str) -> str:
        return require_utf8_max(value, MAX_IDENTITY_LEN, "user")

    @model_validator(mode="after")
    def _validate_balances(self) -> "Loan":
        """Validate balance and terminal-state consistency."""
        if self.outstanding_balance > self.total_amount:
            logger.warning(
                "Loan validation failed user=%s loan_id=%s outstanding=%s total=%s",
                self.user,
                self.loan_id,
                self.outstanding_balance,
                self.total_amount,
            )
            raise ValueError("outstanding_balance exceeds total_amount")
        if self.status == LoanStatus.COMPLETED and self.completed_timestamp is None:
            raise ValueError("completed loans require completed_timestamp")
        if self.status == LoanStatus.DEFAULTED and self.defaulted_timestamp is None:
            raise ValueError("defaulted loans require defaulted_timestamp")
        return self

    @property
    def is_active(self) -> bool:
        return self.status == LoanStatus.ACTIVE
