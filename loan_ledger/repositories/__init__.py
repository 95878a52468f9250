"""Record store implementations."""

from .in_memory_record_store import InMemoryRecordStore

__all__ = ["InMemoryRecordStore"]
