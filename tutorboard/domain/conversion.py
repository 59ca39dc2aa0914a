"""
Conversion between civil time in a named timezone and absolute UTC instants.

The offset of a timezone is a function of the calendar date, not a constant
of the zone. Every conversion here therefore goes through pendulum's zone
rules for the concrete date involved; no UTC offset is ever hard-coded.

Skipped and ambiguous local times (the hour around a DST transition) are
resolved the way pendulum resolves them by default: a skipped time is moved
forward past the gap and an ambiguous time takes the post-transition offset.
"""

import logging
import re
from datetime import datetime, time
from typing import Callable, Optional, Union

import pendulum
from pendulum import Date, DateTime, WeekDay

from .exceptions import InvalidInstant, InvalidTime
from .timezones import DEFAULT_REGISTRY, TimezoneRegistry

logger = logging.getLogger(__name__)


INVALID_DATE = "Invalid Date"

UTC_FORMAT = "YYYY-MM-DD[T]HH:mm:ss.SSS[Z]"

Weekday = Union[str, int, WeekDay]
LocalTime = Union[str, time]
Instant = Union[str, datetime]

_TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")

_WEEKDAY_ABBREVIATIONS = {day.name[:3]: day for day in WeekDay}


def parse_local_time(value: LocalTime) -> time:
    """
    Parse a 24-hour wall-clock time.

    Accepts ``"HH:MM"`` / ``"H:MM"`` strings or a ``datetime.time``.

    Raises:
        InvalidTime: If the value is not a well-formed 24-hour time
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)

    if not isinstance(value, str):
        raise InvalidTime(f"Expected a time like '09:00', got {value!r}")

    match = _TIME_PATTERN.match(value.strip())
    if not match:
        raise InvalidTime(f"Invalid 24-hour time: {value!r}")

    return time(hour=int(match.group(1)), minute=int(match.group(2)))


def parse_weekday(value: Weekday) -> WeekDay:
    """
    Parse a weekday given as a name, a three-letter abbreviation or an index.

    Indexes follow pendulum's convention: 0=Monday, 6=Sunday.
    """
    if isinstance(value, WeekDay):
        return value

    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return WeekDay(value)
        except ValueError:
            raise InvalidTime(f"Weekday index must be between 0 and 6, got {value}") from None

    if isinstance(value, str):
        key = value.strip().upper()
        if key in WeekDay.__members__:
            return WeekDay[key]
        if key in _WEEKDAY_ABBREVIATIONS:
            return _WEEKDAY_ABBREVIATIONS[key]

    raise InvalidTime(f"Unknown weekday: {value!r}")


def weekday_name(day: WeekDay) -> str:
    return day.name.capitalize()


def parse_instant(instant: Instant) -> DateTime:
    """
    Parse a stored UTC instant.

    Strings must be ISO-8601 date-times; naive datetimes are taken as UTC.

    Raises:
        InvalidInstant: If the value does not describe a point in time
    """
    if isinstance(instant, datetime):
        return pendulum.instance(instant, tz="UTC")

    if not isinstance(instant, str) or not instant.strip():
        raise InvalidInstant(f"Not a UTC instant: {instant!r}")

    try:
        parsed = pendulum.parse(instant.strip(), tz="UTC")
    except (ValueError, TypeError, OverflowError) as exc:
        raise InvalidInstant(f"Not a UTC instant: {instant!r}") from exc

    # pendulum also parses bare times and durations
    if not isinstance(parsed, DateTime):
        raise InvalidInstant(f"Not a UTC instant: {instant!r}")

    return parsed


def format_utc(dt: datetime) -> str:
    """Serialise an instant the way slot records store it."""
    return pendulum.instance(dt, tz="UTC").in_timezone("UTC").format(UTC_FORMAT)


class TimeConverter:
    """
    Converts between (weekday, local time, timezone code) and UTC instants.

    The only impure input is "now", used to pick this week's occurrence of a
    weekday. It comes from ``clock`` unless passed explicitly.
    """

    def __init__(
        self,
        registry: TimezoneRegistry = DEFAULT_REGISTRY,
        clock: Optional[Callable[[], DateTime]] = None,
    ):
        self.registry = registry
        self._clock = clock or pendulum.now

    def resolve_weekday(
        self,
        weekday: Weekday,
        zone_code: str,
        now: Optional[datetime] = None,
    ) -> Date:
        """
        Return the next date falling on ``weekday``, counting today.

        "Today" is today's date in the zone of ``zone_code``. If today already
        is ``weekday`` the result is today, so the result is always 0-6 days
        ahead.
        """
        target = parse_weekday(weekday)
        zone = self.registry.resolve(zone_code)

        reference = pendulum.instance(now, tz="UTC") if now is not None else self._clock()
        today = reference.in_timezone(zone).date()

        days_ahead = (target - today.day_of_week) % 7
        return today.add(days=days_ahead)

    def to_absolute_utc(
        self,
        weekday: Weekday,
        local_time: LocalTime,
        zone_code: str,
        now: Optional[datetime] = None,
    ) -> DateTime:
        """
        Convert this week's ``weekday`` at ``local_time`` in ``zone_code`` to UTC.

        Steps:
        1. Resolve the next occurrence of the weekday (today counts)
        2. Combine that date with the wall-clock time
        3. Localise with the zone rule in force on that date
        4. Express the result in UTC

        Raises:
            InvalidTime: If the time or weekday is malformed
            UnknownZone: If the zone code is not in the registry
        """
        clock_time = parse_local_time(local_time)
        zone = self.registry.resolve(zone_code)
        day = self.resolve_weekday(weekday, zone_code, now=now)

        local = pendulum.datetime(
            day.year,
            day.month,
            day.day,
            clock_time.hour,
            clock_time.minute,
            tz=zone,
        )

        return local.in_timezone("UTC")

    def to_utc_string(
        self,
        weekday: Weekday,
        local_time: LocalTime,
        zone_code: str,
        now: Optional[datetime] = None,
    ) -> str:
        """Same as ``to_absolute_utc`` but serialised for storage."""
        return format_utc(self.to_absolute_utc(weekday, local_time, zone_code, now=now))

    def localize(self, instant: Instant, zone_code: str) -> DateTime:
        """
        Express a UTC instant in the local civil time of ``zone_code``.

        Raises:
            InvalidInstant: If ``instant`` cannot be parsed
            UnknownZone: If the zone code is not in the registry
        """
        zone = self.registry.resolve(zone_code)
        return parse_instant(instant).in_timezone(zone)

    def format_in_zone(self, instant: Instant, zone_code: str) -> str:
        """Render as weekday and clock time, e.g. ``Monday 9:00 AM``."""
        return self._format(instant, zone_code, "dddd h:mm A")

    def format_day(self, instant: Instant, zone_code: str) -> str:
        """Render the weekday only, e.g. ``Monday``."""
        return self._format(instant, zone_code, "dddd")

    def format_clock(self, instant: Instant, zone_code: str, hour12: bool = True) -> str:
        """Render the clock time, ``9:00 AM`` or ``09:00`` with ``hour12=False``."""
        return self._format(instant, zone_code, "h:mm A" if hour12 else "HH:mm")

    def format_date(self, instant: Instant, zone_code: str) -> str:
        """Render the calendar date, e.g. ``Mon, Sep 16, 2024``."""
        return self._format(instant, zone_code, "ddd, MMM D, YYYY")

    def _format(self, instant: Instant, zone_code: str, fmt: str) -> str:
        # Unknown zone codes are caller errors and propagate
        zone = self.registry.resolve(zone_code)

        try:
            local = parse_instant(instant).in_timezone(zone)
        except InvalidInstant as exc:
            logger.warning("Cannot format %r in %s: %s", instant, zone_code, exc)
            return INVALID_DATE

        return local.format(fmt, locale="en")
