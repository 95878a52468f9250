"""Borrower profile record."""

import logging

from typing import Annotated

from pydantic import Field, field_validator, model_validator

from loan_ledger.common.protocol_constants import (
    INITIAL_CREDIT_SCORE,
    MAX_CREDIT_SCORE,
    MAX_IDENTITY_LEN,
    MAX_NAME_LEN,
    MIN_CREDIT_SCORE,
)

from .base import (
    BaseRecordModel,
    Counter8,
    Counter16,
    Identity,
    Money,
    UnixTimestamp,
    require_utf8_max,
)
from .codec import (
    EnumCodec,
    I64_CODEC,
    IDENTITY_CODEC,
    StrCodec,
    U8_CODEC,
    U16_CODEC,
    U64_CODEC,
)
from .enums import EmploymentType, RiskLevel


logger = logging.getLogger(__name__)

ActiveLoanCount = Annotated[int, Field(ge=0, le=1)]


class UserProfile(BaseRecordModel):
    """Represents one registered borrower and their repayment history."""

    ACCOUNT_NAME = "UserProfile"
    LAYOUT = (
        ("authority", IDENTITY_CODEC),
        ("full_name", StrCodec(MAX_NAME_LEN)),
        ("monthly_income", U64_CODEC),
        ("employment_type", EnumCodec(EmploymentType)),
        ("total_loans", U16_CODEC),
        ("active_loans", U8_CODEC),
        ("completed_loans", U16_CODEC),
        ("defaulted_loans", U8_CODEC),
        ("total_borrowed", U64_CODEC),
        ("total_repaid", U64_CODEC),
        ("on_time_payments", U16_CODEC),
        ("late_payments", U16_CODEC),
        ("missed_payments", U16_CODEC),
        ("credit_score", U16_CODEC),
        ("risk_level", EnumCodec(RiskLevel)),
        ("registration_timestamp", I64_CODEC),
        ("last_updated", I64_CODEC),
    )

    authority: Identity
    full_name: str = Field(..., min_length=1)
    monthly_income: Money = Field(...)
    employment_type: EmploymentType = Field(...)

    total_loans: Counter16 = Field(default=0)
    active_loans: ActiveLoanCount = Field(default=0)
    completed_loans: Counter16 = Field(default=0)
    defaulted_loans: Counter8 = Field(default=0)
    total_borrowed: Money = Field(default=0)
    total_repaid: Money = Field(default=0)
    on_time_payments: Counter16 = Field(default=0)
    late_payments: Counter16 = Field(default=0)
    missed_payments: Counter16 = Field(default=0)

    credit_score: Counter16 = Field(default=INITIAL_CREDIT_SCORE)
    risk_level: RiskLevel = Field(default=RiskLevel.MEDIUM)
    registration_timestamp: UnixTimestamp = Field(...)
    last_updated: UnixTimestamp = Field(...)

    @field_validator("authority")
    @classmethod
    def _authority_fits(cls, value: str) -> str:
        return require_utf8_max(value, MAX_IDENTITY_LEN, "authority")

    @field_validator("full_name")
    @classmethod
    def _name_fits(cls, value: str) -> str:
        """Names are stored verbatim; only the byte bound is enforced here."""
        return require_utf8_max(value, MAX_NAME_LEN, "full_name")

    @model_validator(mode="after")
    def _validate_score_bounds(self) -> "UserProfile":
        if not MIN_CREDIT_SCORE <= self.credit_score <= MAX_CREDIT_SCORE:
            logger.warning(
                "Rejected profile with out-of-range credit score authority=%s score=%s",
                self.authority,
                self.credit_score,
            )
            raise ValueError(
                "credit_score must be within [{0}, {1}]".format(MIN_CREDIT_SCORE, MAX_CREDIT_SCORE)
            )
        return self
