"""
Tests for the SchedulingBoard service.
"""

import logging
from typing import Any, List, Tuple

import pendulum
import pytest

from tutorboard.adapters.memory_store import InMemoryRecordStore
from tutorboard.domain.conversion import TimeConverter
from tutorboard.domain.exceptions import InvalidTime, MissingField, ReferenceNotFound, UnknownZone
from tutorboard.domain.models import SlotSpec, Student, TeacherProfile
from tutorboard.services.scheduling_board import SchedulingBoard

SUMMER_NOW = pendulum.datetime(2024, 7, 3, 12, 0, tz="America/New_York")

REED = TeacherProfile(name="Dr. Reed", subject="Quantum Physics", timezone="EST")
OKAFOR = TeacherProfile(name="Ms. Okafor", subject="Chemistry", timezone="IST")


class RecordingStore(InMemoryRecordStore):
    """In-memory store that remembers every write."""

    def __init__(self, initial_data=None):
        super().__init__(initial_data=initial_data)
        self.writes: List[Tuple[Any, ...]] = []

    def create_record(self, collection, data):
        record_id = super().create_record(collection, data)
        self.writes.append(("create", collection, record_id))
        return record_id

    def update_field(self, collection, record_id, field_path, value):
        self.writes.append(("update", collection, record_id, field_path, value))
        super().update_field(collection, record_id, field_path, value)

    def delete_record(self, collection, record_id):
        self.writes.append(("delete", collection, record_id))
        super().delete_record(collection, record_id)


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def board(store):
    return SchedulingBoard(store=store, converter=TimeConverter(clock=lambda: SUMMER_NOW))


class TestAddTeacher:
    """Tests for creating teachers with their slots."""

    def test_creates_teacher_and_slots(self, board, store):
        teacher, slots = board.add_teacher(REED, [
            SlotSpec("Monday", "09:00", "EST"),
            SlotSpec("Tuesday", "10:00", "PST"),
        ])

        assert board.teachers == (teacher,)
        assert teacher.name == "Dr. Reed"
        assert teacher.timezone == "EST"
        assert [slot.utc_start_time for slot in slots] == [
            "2024-07-08T13:00:00.000Z",
            "2024-07-09T17:00:00.000Z",
        ]
        assert all(slot.teacher_id == teacher.id for slot in slots)
        assert set(board.slots) == set(slots)
        assert store.snapshot("slots")[slots[0].id] == {
            "teacherId": teacher.id,
            "utcStartTime": "2024-07-08T13:00:00.000Z",
        }

    def test_slot_ids_are_unique_across_teachers(self, board):
        _, reed_slots = board.add_teacher(REED, [SlotSpec("Mon", "09:00", "EST")] * 3)
        _, okafor_slots = board.add_teacher(OKAFOR, [SlotSpec("Mon", "09:00", "EST")] * 3)

        ids = [slot.id for slot in reed_slots + okafor_slots]
        assert len(set(ids)) == 6

    def test_without_slots(self, board):
        teacher, slots = board.add_teacher(REED)

        assert slots == []
        assert board.find_teacher(teacher.id) == teacher

    def test_bad_specs_are_dropped(self, board, caplog):
        """Test that a failing slot spec does not stop the rest."""
        specs = [
            SlotSpec("Monday", "09:00", "EST"),
            SlotSpec("Funday", "09:00", "EST"),
            SlotSpec("Monday", "25:00", "EST"),
            SlotSpec("Monday", "09:00", "GMT"),
            SlotSpec("Friday", "16:30", "IST"),
        ]

        with caplog.at_level(logging.WARNING, logger="tutorboard.services.scheduling_board"):
            teacher, slots = board.add_teacher(REED, specs)

        assert board.find_teacher(teacher.id) is not None
        assert len(slots) == 2
        assert len(board.slots) == 2
        assert caplog.text.count("Dropping slot") == 3

    def test_unknown_teacher_zone_writes_nothing(self, board, store):
        with pytest.raises(UnknownZone):
            board.add_teacher(TeacherProfile(name="X", subject="Y", timezone="CET"), [SlotSpec("Mon", "09:00", "EST")])

        assert store.writes == []
        assert board.teachers == ()

    def test_teacher_zone_is_normalised(self, board):
        teacher, _ = board.add_teacher(TeacherProfile(name="X", subject="Y", timezone="pst"))

        assert teacher.timezone == "PST"

    @pytest.mark.parametrize("name, subject", [("", "Physics"), ("   ", "Physics"), ("Dr. Reed", ""), ("Dr. Reed", "\t")])
    def test_blank_name_or_subject_writes_nothing(self, board, store, name, subject):
        with pytest.raises(MissingField):
            board.add_teacher(TeacherProfile(name=name, subject=subject, timezone="EST"), [SlotSpec("Mon", "09:00", "EST")])

        assert store.writes == []
        assert board.teachers == ()

    def test_name_and_subject_are_stripped(self, board):
        teacher, _ = board.add_teacher(TeacherProfile(name="  Dr. Reed ", subject=" Physics", timezone="EST"))

        assert (teacher.name, teacher.subject) == ("Dr. Reed", "Physics")


class TestAddSlot:
    """Tests for adding a single slot."""

    def test_add_slot(self, board):
        teacher, _ = board.add_teacher(REED)

        slot = board.add_slot(teacher.id, SlotSpec("Wednesday", "08:00", "EST"))

        assert slot.utc_start_time == "2024-07-03T12:00:00.000Z"
        assert board.teacher_slots(teacher.id) == [slot]

    def test_unknown_teacher_is_noop(self, board, store):
        assert board.add_slot("missing", SlotSpec("Mon", "09:00", "EST")) is None
        assert store.writes == []

    def test_conversion_errors_propagate(self, board):
        teacher, _ = board.add_teacher(REED)

        with pytest.raises(InvalidTime):
            board.add_slot(teacher.id, SlotSpec("Mon", "9 o'clock", "EST"))


class TestAssignment:
    """Tests for assigning and clearing students."""

    def test_assign_student(self, board, store):
        _, (slot,) = board.add_teacher(REED, [SlotSpec("Mon", "09:00", "EST")])

        updated = board.assign_student(slot.id, Student(name="Alex", timezone="IST"))

        assert updated.student == Student(name="Alex", timezone="IST")
        assert board.find_slot(slot.id).student == Student(name="Alex", timezone="IST")
        assert store.snapshot("slots")[slot.id]["student"] == {"name": "Alex", "timezone": "IST"}

    def test_reassign_keeps_latest_only(self, board):
        """Test that assignments replace rather than accumulate."""
        _, (slot,) = board.add_teacher(REED, [SlotSpec("Mon", "09:00", "EST")])

        board.assign_student(slot.id, Student(name="Alex", timezone="IST"))
        board.assign_student(slot.id, Student(name="Sam", timezone="pst"))

        assert board.find_slot(slot.id).student == Student(name="Sam", timezone="PST")
        sessions = board.list_scheduled()
        assert len(sessions) == 1
        assert sessions[0].student.name == "Sam"

    def test_assign_does_not_move_slot(self, board):
        _, (slot,) = board.add_teacher(REED, [SlotSpec("Mon", "09:00", "EST")])

        board.assign_student(slot.id, Student(name="Alex", timezone="IST"))

        assert board.find_slot(slot.id).utc_start_time == slot.utc_start_time

    def test_assign_unknown_zone(self, board):
        _, (slot,) = board.add_teacher(REED, [SlotSpec("Mon", "09:00", "EST")])

        with pytest.raises(UnknownZone):
            board.assign_student(slot.id, Student(name="Alex", timezone="Asia/Kolkata"))

        assert board.find_slot(slot.id).student is None

    @pytest.mark.parametrize("name", ["", "  "])
    def test_assign_blank_student_name(self, board, store, name):
        _, (slot,) = board.add_teacher(REED, [SlotSpec("Mon", "09:00", "EST")])
        writes_before = list(store.writes)

        with pytest.raises(MissingField):
            board.assign_student(slot.id, Student(name=name, timezone="IST"))

        assert store.writes == writes_before
        assert board.find_slot(slot.id).student is None

    def test_assign_unknown_slot_is_noop(self, board, store):
        assert board.assign_student("missing", Student(name="Alex", timezone="IST")) is None
        assert store.writes == []

    def test_assign_then_clear_drops_from_schedule(self, board, store):
        """Test a slot assigned to Alex and then cleared is no longer scheduled."""
        _, (slot,) = board.add_teacher(REED, [SlotSpec("Mon", "09:00", "EST")])

        board.assign_student(slot.id, Student(name="Alex", timezone="IST"))
        assert len(board.list_scheduled()) == 1

        board.clear_student(slot.id)

        assert board.list_scheduled() == []
        assert "student" not in store.snapshot("slots")[slot.id]

    def test_clear_open_slot_is_noop(self, board, store):
        """Test that clearing an open slot issues no write."""
        _, (slot,) = board.add_teacher(REED, [SlotSpec("Mon", "09:00", "EST")])
        writes_before = list(store.writes)

        result = board.clear_student(slot.id)

        assert result == slot
        assert store.writes == writes_before

    def test_clear_unknown_slot_is_noop(self, board):
        assert board.clear_student("missing") is None


class TestDeleteTeacher:
    """Tests for cascading teacher deletion."""

    def test_deletes_teacher_and_all_slots(self, board):
        """Test that Dr. Reed's slots vanish regardless of occupancy."""
        reed, (open_slot, booked_slot) = board.add_teacher(REED, [
            SlotSpec("Mon", "09:00", "EST"),
            SlotSpec("Tue", "09:00", "EST"),
        ])
        okafor, okafor_slots = board.add_teacher(OKAFOR, [SlotSpec("Mon", "18:00", "IST")])
        board.assign_student(booked_slot.id, Student(name="Alex", timezone="IST"))
        board.assign_student(okafor_slots[0].id, Student(name="Sam", timezone="PST"))

        assert board.delete_teacher(reed.id) is True

        assert board.teachers == (okafor,)
        assert [slot.teacher_id for slot in board.slots] == [okafor.id]
        assert board.find_slot(open_slot.id) is None
        assert board.find_slot(booked_slot.id) is None
        assert [session.student.name for session in board.list_scheduled()] == ["Sam"]

    def test_deletes_teacher_before_slots(self, board, store):
        reed, slots = board.add_teacher(REED, [SlotSpec("Mon", "09:00", "EST"), SlotSpec("Tue", "09:00", "EST")])
        store.writes.clear()

        board.delete_teacher(reed.id)

        assert store.writes[0] == ("delete", "teachers", reed.id)
        assert sorted(store.writes[1:]) == sorted(("delete", "slots", slot.id) for slot in slots)

    def test_unknown_teacher_is_noop(self, board, store):
        board.add_teacher(REED, [SlotSpec("Mon", "09:00", "EST")])
        store.writes.clear()

        assert board.delete_teacher("missing") is False
        assert store.writes == []
        assert len(board.teachers) == 1


class TestBoardState:
    """Tests for state tracking and lookups."""

    def test_loads_existing_records(self):
        store = InMemoryRecordStore(initial_data={
            "teachers": {"1": {"name": "Dr. Evelyn Reed", "subject": "Quantum Physics", "timezone": "EST"}},
            "slots": {
                "101": {"teacherId": "1", "utcStartTime": "2024-09-16T14:00:00.000Z"},
                "102": {
                    "teacherId": "1",
                    "utcStartTime": "2024-09-17T15:00:00.000Z",
                    "student": {"name": "Alex", "timezone": "IST"},
                },
            },
        })

        board = SchedulingBoard(store=store)

        assert board.get_teacher("1").name == "Dr. Evelyn Reed"
        assert [session.slot.id for session in board.list_scheduled()] == ["102"]

    def test_malformed_records_are_skipped(self, caplog):
        store = InMemoryRecordStore(initial_data={
            "teachers": {"1": {"name": "No subject"}},
            "slots": {"101": {"utcStartTime": "2024-09-16T14:00:00.000Z"}, "102": "nonsense"},
        })

        with caplog.at_level(logging.WARNING, logger="tutorboard.services.scheduling_board"):
            board = SchedulingBoard(store=store)

        assert board.teachers == ()
        assert board.slots == ()
        assert caplog.text.count("Skipping malformed") == 3

    def test_unknown_teacher_zone_is_skipped(self, caplog):
        store = InMemoryRecordStore(initial_data={
            "teachers": {
                "1": {"name": "Dr. Reed", "subject": "Physics", "timezone": "GMT"},
                "2": {"name": "Ms. Okafor", "subject": "Chemistry", "timezone": "IST"},
            },
        })

        with caplog.at_level(logging.WARNING, logger="tutorboard.services.scheduling_board"):
            board = SchedulingBoard(store=store)

        assert [teacher.id for teacher in board.teachers] == ["2"]
        assert "Skipping malformed teachers record 1" in caplog.text

    def test_unknown_student_zone_is_skipped(self, caplog):
        store = InMemoryRecordStore(initial_data={
            "teachers": {"1": {"name": "Dr. Reed", "subject": "Physics", "timezone": "EST"}},
            "slots": {
                "101": {"teacherId": "1", "utcStartTime": "2024-09-16T14:00:00.000Z"},
                "102": {
                    "teacherId": "1",
                    "utcStartTime": "2024-09-17T15:00:00.000Z",
                    "student": {"name": "Alex", "timezone": "Europe/Paris"},
                },
            },
        })

        with caplog.at_level(logging.WARNING, logger="tutorboard.services.scheduling_board"):
            board = SchedulingBoard(store=store)

        assert [slot.id for slot in board.slots] == ["101"]
        assert board.list_scheduled() == []
        assert "Skipping malformed slots record 102" in caplog.text

    def test_stored_zone_codes_are_normalised(self):
        store = InMemoryRecordStore(initial_data={
            "teachers": {"1": {"name": "Dr. Reed", "subject": "Physics", "timezone": "est"}},
            "slots": {
                "101": {
                    "teacherId": "1",
                    "utcStartTime": "2024-09-16T14:00:00.000Z",
                    "student": {"name": "Alex", "timezone": " ist "},
                },
            },
        })

        board = SchedulingBoard(store=store)

        assert board.get_teacher("1").timezone == "EST"
        assert board.get_slot("101").student.timezone == "IST"

    def test_get_missing_raises(self, board):
        with pytest.raises(ReferenceNotFound) as exc_info:
            board.get_teacher("missing")
        assert exc_info.value.collection == "teachers"

        with pytest.raises(ReferenceNotFound):
            board.get_slot("missing")

    def test_listeners_are_notified(self, board):
        calls = []
        remove = board.add_listener(lambda b: calls.append(len(b.slots)))

        teacher, _ = board.add_teacher(REED, [SlotSpec("Mon", "09:00", "EST")])
        assert calls == [0, 1]

        remove()
        board.delete_teacher(teacher.id)
        assert calls == [0, 1]

    def test_close_stops_following_store(self, board, store):
        board.close()

        store.create_record("teachers", {"name": "Late", "subject": "History", "timezone": "MT"})

        assert board.teachers == ()
