"""
Domain layer - Pure business logic without external dependencies.
"""

from .conversion import INVALID_DATE, TimeConverter
from .exceptions import (
    InvalidInstant,
    InvalidTime,
    MissingField,
    ReferenceNotFound,
    SchedulingError,
    UnknownZone,
)
from .models import (
    AvailabilitySlot,
    ScheduledSession,
    SlotSpec,
    SlotState,
    Student,
    Teacher,
    TeacherProfile,
)
from .scheduling import list_scheduled, slots_for_teacher, sort_by_start
from .timezones import DEFAULT_REGISTRY, TimezoneRegistry, ZoneEntry

__all__ = [
    "INVALID_DATE",
    "TimeConverter",
    "InvalidInstant",
    "InvalidTime",
    "MissingField",
    "ReferenceNotFound",
    "SchedulingError",
    "UnknownZone",
    "AvailabilitySlot",
    "ScheduledSession",
    "SlotSpec",
    "SlotState",
    "Student",
    "Teacher",
    "TeacherProfile",
    "list_scheduled",
    "slots_for_teacher",
    "sort_by_start",
    "DEFAULT_REGISTRY",
    "TimezoneRegistry",
    "ZoneEntry",
]
