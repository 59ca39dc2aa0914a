"""
Service layer helpers that bind the domain to a record store.
"""

from .scheduling_board import RecordStoreProtocol, SchedulingBoard

__all__ = ["RecordStoreProtocol", "SchedulingBoard"]
