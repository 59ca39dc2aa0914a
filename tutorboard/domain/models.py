"""
Domain models for teachers, students and availability slots.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from .conversion import LocalTime, Weekday


class SlotState(str, Enum):
    OPEN = "open"
    OCCUPIED = "occupied"


@dataclass(frozen=True)
class TeacherProfile:
    """The details a teacher is created from, before an id exists."""
    name: str
    subject: str
    timezone: str


@dataclass(frozen=True)
class Teacher:
    id: str
    name: str
    subject: str
    timezone: str  # Timezone code, e.g. "EST"

    def to_record(self) -> Dict[str, Any]:
        return {"name": self.name, "subject": self.subject, "timezone": self.timezone}

    @classmethod
    def from_record(cls, record_id: str, data: Mapping[str, Any]) -> "Teacher":
        """
        Build a teacher from a stored record.

        Raises:
            KeyError: If a required field is missing
        """
        return cls(
            id=record_id,
            name=data["name"],
            subject=data["subject"],
            timezone=data["timezone"],
        )


@dataclass(frozen=True)
class Student:
    """
    A student occupying a slot.

    Students have no identity of their own; they only exist inside the slot
    they occupy.
    """
    name: str
    timezone: str

    def to_record(self) -> Dict[str, Any]:
        return {"name": self.name, "timezone": self.timezone}

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "Student":
        return cls(name=data["name"], timezone=data["timezone"])


@dataclass(frozen=True)
class SlotSpec:
    """A slot as entered by a user: weekday and wall-clock time in a timezone."""
    weekday: Weekday
    local_time: LocalTime
    timezone: str


@dataclass(frozen=True)
class AvailabilitySlot:
    """
    A bookable unit of a teacher's availability.

    Invariants:
    - ``utc_start_time`` is set once at creation and never changes
    - at most one student occupies the slot; assigning replaces, never adds
    """
    id: str
    teacher_id: str
    utc_start_time: str
    student: Optional[Student] = None

    @property
    def state(self) -> SlotState:
        return SlotState.OCCUPIED if self.student is not None else SlotState.OPEN

    @property
    def is_occupied(self) -> bool:
        return self.student is not None

    def assign(self, student: Student) -> "AvailabilitySlot":
        """Return this slot occupied by ``student``, replacing any occupant."""
        return replace(self, student=student)

    def clear(self) -> "AvailabilitySlot":
        """Return this slot with no occupant. Clearing an open slot is a no-op."""
        if self.student is None:
            return self
        return replace(self, student=None)

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "teacherId": self.teacher_id,
            "utcStartTime": self.utc_start_time,
        }
        if self.student is not None:
            record["student"] = self.student.to_record()
        return record

    @classmethod
    def from_record(cls, record_id: str, data: Mapping[str, Any]) -> "AvailabilitySlot":
        """
        Build a slot from a stored record.

        The instant is kept verbatim; unparsable values surface only when
        the slot is rendered.

        Raises:
            KeyError: If a required field is missing
        """
        student_data = data.get("student")
        return cls(
            id=record_id,
            teacher_id=data["teacherId"],
            utc_start_time=data["utcStartTime"],
            student=Student.from_record(student_data) if student_data else None,
        )


@dataclass(frozen=True)
class ScheduledSession:
    """An occupied slot joined to its teacher, if the teacher still exists."""
    slot: AvailabilitySlot
    teacher: Optional[Teacher]

    @property
    def student(self) -> Optional[Student]:
        return self.slot.student

    @property
    def utc_start_time(self) -> str:
        return self.slot.utc_start_time
