"""
Adapters layer - Record stores the scheduling board persists through.
"""

from .memory_store import InMemoryRecordStore, JsonFileRecordStore

__all__ = ["InMemoryRecordStore", "JsonFileRecordStore"]
