"""
Pure scheduling operations over teacher and slot collections.

Nothing here talks to a record store; callers pass in the current state.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar, Union

from pendulum import DateTime

from .conversion import parse_instant
from .exceptions import InvalidInstant
from .models import AvailabilitySlot, ScheduledSession, Teacher

T = TypeVar("T", AvailabilitySlot, ScheduledSession)


def list_scheduled(
    teachers: Iterable[Teacher],
    slots: Iterable[AvailabilitySlot],
    teacher_id: Optional[str] = None,
) -> List[ScheduledSession]:
    """
    Join every occupied slot to its teacher.

    Open slots are left out. A slot whose teacher is missing is still
    returned, with ``teacher`` set to None. Input order is preserved; use
    ``sort_by_start`` for chronological display.

    Args:
        teachers: Current teachers
        slots: Current slots
        teacher_id: Only include slots owned by this teacher
    """
    teachers_by_id: Dict[str, Teacher] = {teacher.id: teacher for teacher in teachers}

    return [
        ScheduledSession(slot=slot, teacher=teachers_by_id.get(slot.teacher_id))
        for slot in slots
        if slot.is_occupied and (teacher_id is None or slot.teacher_id == teacher_id)
    ]


def _start_key(item: Union[AvailabilitySlot, ScheduledSession]) -> Tuple[int, Union[DateTime, str]]:
    try:
        return (0, parse_instant(item.utc_start_time))
    except InvalidInstant:
        return (1, str(item.utc_start_time))


def sort_by_start(items: Iterable[T]) -> List[T]:
    """Order slots or sessions by start instant; unparsable instants go last."""
    return sorted(items, key=_start_key)


def slots_for_teacher(slots: Sequence[AvailabilitySlot], teacher_id: str) -> List[AvailabilitySlot]:
    """A teacher's slots in chronological order."""
    return sort_by_start(slot for slot in slots if slot.teacher_id == teacher_id)
