"""Lazily created risk assessment record."""

from typing import Annotated

from pydantic import Field, field_validator

from loan_ledger.common.protocol_constants import (
    MAX_DEFAULT_PROBABILITY_BPS,
    MAX_IDENTITY_LEN,
    MAX_RISK_SCORE,
    RISK_FACTORS_COUNT,
)

from .base import (
    BaseRecordModel,
    Counter8,
    Identity,
    Money,
    UnixTimestamp,
    require_utf8_max,
)
from .codec import EnumCodec, I64_CODEC, IDENTITY_CODEC, U8_CODEC, U16_CODEC, U64_CODEC
from .enums import RiskLevel


RiskScore = Annotated[int, Field(ge=0, le=MAX_RISK_SCORE)]
DefaultProbabilityBps = Annotated[int, Field(ge=0, le=MAX_DEFAULT_PROBABILITY_BPS)]


class RiskProfile(BaseRecordModel):
    """Latest externally supplied risk snapshot for a borrower."""

    ACCOUNT_NAME = "RiskProfile"
    LAYOUT = (
        ("user", IDENTITY_CODEC),
        ("risk_score", U16_CODEC),
        ("risk_level", EnumCodec(RiskLevel)),
        ("default_probability", U16_CODEC),
        ("recommended_max_loan", U64_CODEC),
        ("last_calculated", I64_CODEC),
        ("factors_count", U8_CODEC),
    )

    user: Identity
    risk_score: RiskScore = Field(...)
    risk_level: RiskLevel = Field(...)
    default_probability: DefaultProbabilityBps = Field(...)
    recommended_max_loan: Money = Field(default=0)
    last_calculated: UnixTimestamp = Field(...)
    factors_count: Counter8 = Field(default=RISK_FACTORS_COUNT)

    @field_validator("user")
    @classmethod
    def _user_fits(cls, value: str) -> str:
        return require_utf8_max(value, MAX_IDENTITY_LEN, "user")
