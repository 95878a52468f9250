"""Shared base record model and common type aliases."""

from datetime import datetime, timezone
import logging
from typing import Annotated, Any, ClassVar, Dict, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .codec import FieldCodec, decode_record, encode_record, record_space
from .exceptions import ModelValidationError


logger = logging.getLogger(__name__)

R = TypeVar("R", bound="BaseRecordModel")

_U8_MAX = 2**8 - 1
_U16_MAX = 2**16 - 1
_U64_MAX = 2**64 - 1
_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1

Money = Annotated[int, Field(ge=0, le=_U64_MAX)]
PercentageBps = Annotated[int, Field(ge=0, le=_U16_MAX)]
UnixTimestamp = Annotated[int, Field(ge=_I64_MIN, le=_I64_MAX)]
Counter8 = Annotated[int, Field(ge=0, le=_U8_MAX)]
Counter16 = Annotated[int, Field(ge=0, le=_U16_MAX)]
Sequence64 = Annotated[int, Field(ge=0, le=_U64_MAX)]
Identity = Annotated[str, Field(min_length=1)]


def utc_now() -> datetime:
    """Return current UTC timestamp."""
    return datetime.now(timezone.utc)


def unix_now() -> int:
    """Return current UTC time as whole unix seconds."""
    return int(utc_now().timestamp())


class BaseRecordModel(BaseModel):
    """Base schema for fixed-layout ledger records.

    Subclasses declare ``LAYOUT``: the ordered field codecs of the persisted
    encoding. Fields are only ever appended to a layout.
    """

    ACCOUNT_NAME: ClassVar[str] = ""
    LAYOUT: ClassVar[Tuple[Tuple[str, FieldCodec], ...]] = ()

    model_config = ConfigDict(
        str_strip_whitespace=False,
        validate_assignment=True,
        use_enum_values=False,
        extra="forbid",
    )

    @classmethod
    def space(cls) -> int:
        """Return the byte size to allocate for one record of this type."""
        return record_space(cls.LAYOUT)

    def encode(self) -> bytes:
        """Serialize into the ledger's binary layout.

        Raises:
            ModelValidationError: If a field does not fit its declared codec.
        """
        return encode_record(type(self).ACCOUNT_NAME, type(self).LAYOUT, self.to_record())

    @classmethod
    def decode(cls: Type[R], data: bytes) -> R:
        """Parse a record from its binary layout.

        Trailing fields missing from a record written at an earlier layout
        take their model defaults.

        Raises:
            ModelValidationError: If the payload is truncated, foreign or malformed.
        """
        optional_fields = frozenset(name for name, info in cls.model_fields.items() if not info.is_required())
        return cls.from_record(decode_record(cls.ACCOUNT_NAME, cls.LAYOUT, data, optional_fields))

    def to_record(self) -> Dict[str, Any]:
        """Serialize model into a plain field dictionary."""
        return self.model_dump()

    @classmethod
    def from_record(cls: Type[R], data: Dict[str, Any]) -> R:
        """Create model instance from a plain field dictionary.

        Raises:
            ModelValidationError: If payload parsing fails.
        """
        try:
            return cls.model_validate(dict(data))
        except ValidationError as exc:
            logger.exception("Failed to parse %s payload", cls.__name__)
            raise ModelValidationError(str(exc))

    def evolve(self: R, **changes: Any) -> R:
        """Return a validated copy with ``changes`` applied."""
        payload = self.to_record()
        payload.update(changes)
        return type(self).from_record(payload)


def utf8_length(value: str) -> int:
    """Return the encoded byte length used by string record fields."""
    return len(value.encode("utf-8"))


def require_utf8_max(value: str, max_len: int, field_name: str) -> str:
    """Validate that ``value`` fits a string field of ``max_len`` bytes."""
    if utf8_length(value) > max_len:
        raise ValueError("{0} exceeds {1} UTF-8 bytes".format(field_name, max_len))
    return value
