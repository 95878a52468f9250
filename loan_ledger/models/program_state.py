"""Program-wide singleton record."""

from typing import Annotated

from pydantic import Field, field_validator

from loan_ledger.common.protocol_constants import MAX_FEE_PERCENTAGE_BPS, MAX_IDENTITY_LEN

from .base import BaseRecordModel, Identity, Sequence64, require_utf8_max
from .codec import BOOL_CODEC, IDENTITY_CODEC, U16_CODEC, U64_CODEC


FeeBps = Annotated[int, Field(ge=0, le=MAX_FEE_PERCENTAGE_BPS)]


class ProgramState(BaseRecordModel):
    """Administrator identity, global counters and the pause switch."""

    ACCOUNT_NAME = "LoanProgramState"
    LAYOUT = (
        ("authority", IDENTITY_CODEC),
        ("total_users", U64_CODEC),
        ("total_loans", U64_CODEC),
        ("total_volume", U64_CODEC),
        ("fee_percentage", U16_CODEC),
        ("paused", BOOL_CODEC),
    )

    authority: Identity
    total_users: Sequence64 = Field(default=0)
    total_loans: Sequence64 = Field(default=0)
    total_volume: Sequence64 = Field(default=0)
    fee_percentage: FeeBps = Field(default=0)
    paused: bool = Field(default=False)

    @field_validator("authority")
    @classmethod
    def _authority_fits(cls, value: str) -> str:
        return require_utf8_max(value, MAX_IDENTITY_LEN, "authority")
