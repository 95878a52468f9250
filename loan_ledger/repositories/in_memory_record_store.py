"""In-memory implementation of the ledger record store."""

import logging
from threading import RLock
from typing import Dict, List, Optional, Type, TypeVar

from loan_ledger.models.base import BaseRecordModel
from loan_ledger.models.events import EventEnvelope
from loan_ledger.models.exceptions import ModelValidationError, RecordExistsError, RecordNotFoundError
from loan_ledger.models.repositories import LedgerRecordStore, RecordBatch


logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseRecordModel)


class InMemoryRecordStore(LedgerRecordStore):
    """Keeps encoded records in a dict keyed by address.

    Records are held in their binary layout, padded to the record type's
    allocated size, so every load exercises the same decode path a remote
    store would.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._records: Dict[str, bytes] = {}
        self._events: List[EventEnvelope] = []

    def exists(self, address: str) -> bool:
        with self._lock:
            return address in self._records

    def load(self, address: str, model_cls: Type[R]) -> R:
        with self._lock:
            data = self._records.get(address)
        if data is None:
            raise RecordNotFoundError("No {0} record at {1}".format(model_cls.__name__, address), address=address)
        return model_cls.decode(data)

    def raw(self, address: str) -> Optional[bytes]:
        """Return the stored bytes at ``address`` for inspection."""
        with self._lock:
            return self._records.get(address)

    def snapshot(self) -> Dict[str, bytes]:
        """Return a copy of every stored record."""
        with self._lock:
            return dict(self._records)

    def apply(self, batch: RecordBatch) -> List[EventEnvelope]:
        with self._lock:
            staged: Dict[str, bytes] = {}
            for write in batch.writes:
                present = write.address in self._records or write.address in staged
                if write.create and present:
                    raise RecordExistsError(
                        "{0} record already exists at {1}".format(type(write.record).__name__, write.address),
                        address=write.address,
                    )
                if not write.create and write.address not in self._records and write.address not in staged:
                    raise RecordNotFoundError(
                        "{0} record missing at {1}".format(type(write.record).__name__, write.address),
                        address=write.address,
                    )
                encoded = write.record.encode()
                space = type(write.record).space()
                if len(encoded) > space:
                    raise ModelValidationError(
                        "{0} encoding of {1} bytes exceeds allocated {2}".format(
                            type(write.record).__name__, len(encoded), space
                        )
                    )
                staged[write.address] = encoded.ljust(space, b"\x00")

            envelopes = [
                EventEnvelope(sequence=len(self._events) + offset, event=event, caller=batch.caller)
                for offset, event in enumerate(batch.events)
            ]
            self._records.update(staged)
            self._events.extend(envelopes)

        logger.debug("Applied batch writes=%s events=%s", len(staged), len(envelopes))
        return envelopes

    def list_events(self, since: int = 0, limit: Optional[int] = None) -> List[EventEnvelope]:
        with self._lock:
            events = [envelope for envelope in self._events if envelope.sequence >= since]
        if limit is not None:
            events = events[: max(limit, 0)]
        return events
