"""Per-installment payment record."""

from typing import Annotated

from pydantic import Field, field_validator, model_validator

from loan_ledger.common.protocol_constants import MAX_IDENTITY_LEN, MAX_PAYMENT_HASH_LEN

from .base import (
    BaseRecordModel,
    Counter16,
    Identity,
    Money,
    UnixTimestamp,
    require_utf8_max,
)
from .codec import BOOL_CODEC, I64_CODEC, IDENTITY_CODEC, StrCodec, U8_CODEC, U16_CODEC, U64_CODEC


InstallmentNumber = Annotated[int, Field(ge=1, le=255)]
PaidAmount = Annotated[int, Field(gt=0, le=2**64 - 1)]


class PaymentRecord(BaseRecordModel):
    """Receipt for one paid installment.

    ``fine_waived`` is appended after the original fields and accumulates the
    amount forgiven against this installment's fine.
    """

    ACCOUNT_NAME = "PaymentRecord"
    LAYOUT = (
        ("loan", IDENTITY_CODEC),
        ("user", IDENTITY_CODEC),
        ("installment_number", U8_CODEC),
        ("amount", U64_CODEC),
        ("fine_amount", U64_CODEC),
        ("payment_timestamp", I64_CODEC),
        ("payment_hash", StrCodec(MAX_PAYMENT_HASH_LEN)),
        ("on_time", BOOL_CODEC),
        ("days_late", U16_CODEC),
        ("fine_waived", U64_CODEC),
    )

    loan: Identity
    user: Identity
    installment_number: InstallmentNumber = Field(...)
    amount: PaidAmount = Field(...)
    fine_amount: Money = Field(default=0)
    payment_timestamp: UnixTimestamp = Field(...)
    payment_hash: str = Field(default="")
    on_time: bool = Field(...)
    days_late: Counter16 = Field(default=0)
    fine_waived: Money = Field(default=0)

    @field_validator("loan", "user")
    @classmethod
    def _identity_fits(cls, value: str) -> str:
        return require_utf8_max(value, MAX_IDENTITY_LEN, "identity")

    @field_validator("payment_hash")
    @classmethod
    def _hash_fits(cls, value: str) -> str:
        return require_utf8_max(value, MAX_PAYMENT_HASH_LEN, "payment_hash")

    @model_validator(mode="after")
    def _validate_waiver(self) -> "PaymentRecord":
        if self.fine_waived > self.fine_amount:
            raise ValueError("fine_waived exceeds fine_amount")
        if self.on_time and self.days_late:
            raise ValueError("on-time payments cannot carry days_late")
        return self

    @property
    def waivable_fine(self) -> int:
        """Fine that can still be forgiven for this installment."""
        return self.fine_amount - self.fine_waived
