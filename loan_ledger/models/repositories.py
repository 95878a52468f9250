"""Record store interface for datastore-agnostic ledger access."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import logging
from typing import List, Optional, Type, TypeVar

from .base import BaseRecordModel
from .events import EventEnvelope, LedgerEvent


logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseRecordModel)


@dataclass(frozen=True)
class RecordWrite:
    """One record write inside a batch."""

    address: str
    record: BaseRecordModel
    create: bool = False
    role: Optional[str] = None


@dataclass
class RecordBatch:
    """Records and events committed together or not at all."""

    writes: List[RecordWrite] = field(default_factory=list)
    events: List[LedgerEvent] = field(default_factory=list)
    caller: Optional[str] = None

    def create(self, address: str, record: BaseRecordModel, role: Optional[str] = None) -> "RecordBatch":
        self.writes.append(RecordWrite(address=address, record=record, create=True, role=role))
        return self

    def update(self, address: str, record: BaseRecordModel, role: Optional[str] = None) -> "RecordBatch":
        self.writes.append(RecordWrite(address=address, record=record, create=False, role=role))
        return self

    def emit(self, event: LedgerEvent) -> "RecordBatch":
        self.events.append(event)
        return self


class LedgerRecordStore(ABC):
    """Persistent, address-keyed record storage with an event log."""

    @abstractmethod
    def exists(self, address: str) -> bool:
        """Return whether a record is stored at ``address``."""

    @abstractmethod
    def load(self, address: str, model_cls: Type[R]) -> R:
        """Decode the record stored at ``address``.

        Raises:
            RecordNotFoundError: If no record exists at the address.
            ModelValidationError: If the stored bytes are not a ``model_cls`` record.
        """

    def find(self, address: str, model_cls: Type[R]) -> Optional[R]:
        """Return the record at ``address`` or ``None`` when absent."""
        if not self.exists(address):
            return None
        return self.load(address, model_cls)

    @abstractmethod
    def apply(self, batch: RecordBatch) -> List[EventEnvelope]:
        """Commit every write and event of ``batch`` atomically.

        Raises:
            RecordExistsError: If a create targets an occupied address.
            RecordNotFoundError: If an update targets an empty address.
            ModelValidationError: If a record cannot be encoded.
        """

    @abstractmethod
    def list_events(self, since: int = 0, limit: Optional[int] = None) -> List[EventEnvelope]:
        """Return logged events with ``sequence >= since`` in commit order."""
