"""
Domain-specific exception hierarchy for the scheduling board.
"""


class SchedulingError(Exception):
    """Base class for all application-level errors."""


class UnknownZone(SchedulingError):
    """Raised when a timezone code is not part of the registry."""

    def __init__(self, code: object):
        self.code = code
        super().__init__(f"Unknown timezone code: {code!r}")


class InvalidTime(SchedulingError):
    """Raised when a local time or weekday cannot be parsed."""


class InvalidInstant(SchedulingError):
    """Raised when a stored UTC instant does not parse to a point in time."""


class ReferenceNotFound(SchedulingError):
    """Raised when a teacher or slot id is absent from the current state."""

    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"No record '{record_id}' in {collection}")


class MissingField(SchedulingError):
    """Raised when a required text field is empty or blank."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"{field} must not be empty")
