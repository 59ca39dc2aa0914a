"""
The closed set of timezones a board understands.

Every timezone code used anywhere in the domain goes through a
``TimezoneRegistry``. The registry is an immutable value: build it once at
startup and hand it to whatever needs it.
"""

from dataclasses import dataclass
from typing import Iterator, Tuple

from .exceptions import UnknownZone


@dataclass(frozen=True)
class ZoneEntry:
    """A short timezone code with its IANA zone and display label."""
    code: str
    zone: str
    label: str


@dataclass(frozen=True)
class TimezoneRegistry:
    """
    Fixed mapping of timezone codes to IANA zones and labels.

    Iteration order is the order the entries were given in, so listings are
    deterministic.
    """
    entries: Tuple[ZoneEntry, ...]

    def __post_init__(self):
        codes = [entry.code for entry in self.entries]
        if len(set(codes)) != len(codes):
            raise ValueError(f"Duplicate timezone codes in registry: {codes}")

    @classmethod
    def default(cls) -> "TimezoneRegistry":
        return cls(entries=(
            ZoneEntry("IST", "Asia/Kolkata", "Indian Standard Time (IST)"),
            ZoneEntry("CST", "America/Chicago", "Central Time (CT)"),
            ZoneEntry("EST", "America/New_York", "Eastern Time (ET)"),
            ZoneEntry("PST", "America/Los_Angeles", "Pacific Time (PT)"),
            ZoneEntry("MT", "America/Denver", "Mountain Time (MT)"),
        ))

    def _entry(self, code: str) -> ZoneEntry:
        for entry in self.entries:
            if entry.code == code:
                return entry
        raise UnknownZone(code)

    def resolve(self, code: str) -> str:
        """Return the IANA zone identifier for ``code``."""
        return self._entry(code).zone

    def label(self, code: str) -> str:
        """Return the human-readable label for ``code``."""
        return self._entry(code).label

    def all_codes(self) -> Tuple[str, ...]:
        return tuple(entry.code for entry in self.entries)

    def validate(self, code: str) -> str:
        """
        Normalise a user-supplied code and ensure it is known.

        Accepts any casing and surrounding whitespace; returns the canonical
        code.
        """
        if not isinstance(code, str):
            raise UnknownZone(code)
        return self._entry(code.strip().upper()).code

    def __contains__(self, code: object) -> bool:
        return any(entry.code == code for entry in self.entries)

    def __iter__(self) -> Iterator[ZoneEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


DEFAULT_REGISTRY = TimezoneRegistry.default()
