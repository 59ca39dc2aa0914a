"""
Application service binding the scheduling domain to a record store.

The board mirrors the store's ``teachers`` and ``slots`` collections through
subscriptions and translates domain operations into record writes. It
assumes a single caller at a time and relies on the store to serialise
concurrent writers; there is no locking here.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

from ..domain.conversion import TimeConverter
from ..domain.exceptions import MissingField, ReferenceNotFound, SchedulingError, UnknownZone
from ..domain.models import AvailabilitySlot, ScheduledSession, SlotSpec, Student, Teacher, TeacherProfile
from ..domain.scheduling import list_scheduled, slots_for_teacher

logger = logging.getLogger(__name__)

TEACHERS = "teachers"
SLOTS = "slots"


class RecordStoreProtocol(Protocol):
    """Protocol describing the record store behaviour needed by the board."""

    def create_record(self, collection: str, data: Mapping[str, Any]) -> str:
        """Persist a new record and return its generated id."""

    def update_field(self, collection: str, record_id: str, field_path: str, value: Any) -> None:
        """Set one field of a record; ``None`` removes it."""

    def delete_record(self, collection: str, record_id: str) -> None:
        """Remove a record."""

    def subscribe(
        self,
        collection: str,
        on_change: Callable[[Dict[str, Dict[str, Any]]], None],
    ) -> Callable[[], None]:
        """Watch a collection; returns an unsubscribe callable."""


BoardListener = Callable[["SchedulingBoard"], None]


class SchedulingBoard:
    """
    Teachers, their availability slots and the students occupying them.

    Current state is whatever the store last reported. Operations addressing
    an id that is not in that state are silent no-ops.
    """

    def __init__(self, store: RecordStoreProtocol, converter: Optional[TimeConverter] = None) -> None:
        self._store = store
        self._converter = converter or TimeConverter()
        self._teachers: Dict[str, Teacher] = {}
        self._slots: Dict[str, AvailabilitySlot] = {}
        self._listeners: List[BoardListener] = []
        self._unsubscribers = [
            store.subscribe(TEACHERS, self._apply_teachers),
            store.subscribe(SLOTS, self._apply_slots),
        ]

    @property
    def converter(self) -> TimeConverter:
        return self._converter

    @property
    def teachers(self) -> Tuple[Teacher, ...]:
        return tuple(self._teachers.values())

    @property
    def slots(self) -> Tuple[AvailabilitySlot, ...]:
        return tuple(self._slots.values())

    def find_teacher(self, teacher_id: str) -> Optional[Teacher]:
        return self._teachers.get(teacher_id)

    def find_slot(self, slot_id: str) -> Optional[AvailabilitySlot]:
        return self._slots.get(slot_id)

    def get_teacher(self, teacher_id: str) -> Teacher:
        """Raises ReferenceNotFound if the teacher does not exist."""
        teacher = self.find_teacher(teacher_id)
        if teacher is None:
            raise ReferenceNotFound(TEACHERS, teacher_id)
        return teacher

    def get_slot(self, slot_id: str) -> AvailabilitySlot:
        """Raises ReferenceNotFound if the slot does not exist."""
        slot = self.find_slot(slot_id)
        if slot is None:
            raise ReferenceNotFound(SLOTS, slot_id)
        return slot

    def add_teacher(
        self,
        profile: TeacherProfile,
        slot_specs: Sequence[SlotSpec] = (),
    ) -> Tuple[Teacher, List[AvailabilitySlot]]:
        """
        Create a teacher together with their initial slots.

        A slot spec that fails conversion is logged and dropped; it never
        prevents the teacher or the remaining slots from being created.

        Raises:
            MissingField: If the name or subject is blank
            UnknownZone: If the profile's timezone is not in the registry
        """
        name = _required(profile.name, "Teacher name")
        subject = _required(profile.subject, "Subject")
        timezone = self._converter.registry.validate(profile.timezone)
        teacher_data = {"name": name, "subject": subject, "timezone": timezone}
        teacher_id = self._store.create_record(TEACHERS, teacher_data)
        teacher = Teacher.from_record(teacher_id, teacher_data)
        logger.info("Added teacher %s (%s)", teacher.name, teacher_id)

        slots: List[AvailabilitySlot] = []
        for spec in slot_specs:
            try:
                utc_start_time = self._convert(spec)
            except SchedulingError as exc:
                logger.warning("Dropping slot %s for teacher %s: %s", spec, teacher_id, exc)
                continue
            slots.append(self._create_slot(teacher_id, utc_start_time))

        return teacher, slots

    def add_slot(self, teacher_id: str, spec: SlotSpec) -> Optional[AvailabilitySlot]:
        """
        Create a single slot for an existing teacher.

        Returns None without writing anything if the teacher does not exist.

        Raises:
            InvalidTime: If the spec's weekday or time is malformed
            UnknownZone: If the spec's timezone is not in the registry
        """
        if teacher_id not in self._teachers:
            logger.debug("add_slot: no teacher %s", teacher_id)
            return None
        return self._create_slot(teacher_id, self._convert(spec))

    def assign_student(self, slot_id: str, student: Student) -> Optional[AvailabilitySlot]:
        """
        Put ``student`` in a slot, replacing whoever was there.

        Raises:
            MissingField: If the student's name is blank
            UnknownZone: If the student's timezone is not in the registry
        """
        student = Student(
            name=_required(student.name, "Student name"),
            timezone=self._converter.registry.validate(student.timezone),
        )

        slot = self._slots.get(slot_id)
        if slot is None:
            logger.debug("assign_student: no slot %s", slot_id)
            return None

        if slot.student is not None and slot.student != student:
            logger.info("Replacing %s with %s in slot %s", slot.student.name, student.name, slot_id)

        self._store.update_field(SLOTS, slot_id, "student", student.to_record())
        return slot.assign(student)

    def clear_student(self, slot_id: str) -> Optional[AvailabilitySlot]:
        """Remove the occupant of a slot. Open slots are left untouched."""
        slot = self._slots.get(slot_id)
        if slot is None:
            logger.debug("clear_student: no slot %s", slot_id)
            return None

        if not slot.is_occupied:
            return slot

        self._store.update_field(SLOTS, slot_id, "student", None)
        return slot.clear()

    def delete_teacher(self, teacher_id: str) -> bool:
        """
        Delete a teacher and every slot they own.

        The teacher record goes first, then the slots one by one. The store
        has no multi-record transaction, so an interrupted cascade can leave
        orphaned slots behind; recovering from that is up to the store.

        Returns:
            False if the teacher did not exist
        """
        teacher = self._teachers.get(teacher_id)
        if teacher is None:
            logger.debug("delete_teacher: no teacher %s", teacher_id)
            return False

        owned = [slot.id for slot in self._slots.values() if slot.teacher_id == teacher_id]

        self._store.delete_record(TEACHERS, teacher_id)
        for slot_id in owned:
            self._store.delete_record(SLOTS, slot_id)

        logger.info("Deleted teacher %s (%s) and %d slot(s)", teacher.name, teacher_id, len(owned))
        return True

    def list_scheduled(self, teacher_id: Optional[str] = None) -> List[ScheduledSession]:
        """Occupied slots joined to their teachers, see ``domain.scheduling``."""
        return list_scheduled(self.teachers, self.slots, teacher_id=teacher_id)

    def teacher_slots(self, teacher_id: str) -> List[AvailabilitySlot]:
        return slots_for_teacher(self.slots, teacher_id)

    def add_listener(self, listener: BoardListener) -> Callable[[], None]:
        """
        Call ``listener`` with the board whenever its state changes.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def close(self) -> None:
        """Stop following the store."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self._listeners = []

    def _convert(self, spec: SlotSpec) -> str:
        return self._converter.to_utc_string(
            spec.weekday,
            spec.local_time,
            self._converter.registry.validate(spec.timezone),
        )

    def _create_slot(self, teacher_id: str, utc_start_time: str) -> AvailabilitySlot:
        slot_data = {"teacherId": teacher_id, "utcStartTime": utc_start_time}
        slot_id = self._store.create_record(SLOTS, slot_data)
        return AvailabilitySlot.from_record(slot_id, slot_data)

    def _apply_teachers(self, snapshot: Dict[str, Dict[str, Any]]) -> None:
        self._teachers = dict(self._parse(snapshot, Teacher.from_record, TEACHERS))
        self._notify()

    def _apply_slots(self, snapshot: Dict[str, Dict[str, Any]]) -> None:
        self._slots = dict(self._parse(snapshot, AvailabilitySlot.from_record, SLOTS))
        self._notify()

    def _parse(
        self,
        snapshot: Dict[str, Dict[str, Any]],
        factory: Callable[[str, Mapping[str, Any]], Any],
        collection: str,
    ) -> Iterable[Tuple[str, Any]]:
        for record_id, data in (snapshot or {}).items():
            try:
                record = self._canonical_zones(factory(record_id, data))
            except (KeyError, TypeError, AttributeError, UnknownZone) as exc:
                logger.warning("Skipping malformed %s record %s: %s", collection, record_id, exc)
                continue
            yield record_id, record

    def _canonical_zones(self, record: Any) -> Any:
        """Replace stored zone codes with their registry form; unknown codes raise."""
        validate = self._converter.registry.validate
        if isinstance(record, Teacher):
            return replace(record, timezone=validate(record.timezone))
        if isinstance(record, AvailabilitySlot) and record.student is not None:
            student = replace(record.student, timezone=validate(record.student.timezone))
            return replace(record, student=student)
        return record

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)


def _required(value: str, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise MissingField(field)
    return value.strip()
