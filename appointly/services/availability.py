"""
Slot engine.

Single implementation of the scheduling arithmetic used across the API:

- overlap detection between time ranges
- working-window calculation from a seller's weekly template
- discrete slot generation with a buffer between slots
- fixed-step splitting of an arbitrary range against busy blocks

Everything here is pure: callers load appointments or provider busy data
and pass them in as ``(start, end)`` pairs.
"""

from datetime import date, datetime, time, timedelta
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

import pytz

from appointly.schemas.availability import AvailabilitySettings
from appointly.utils.timeutils import ensure_utc, parse_hhmm, utcnow


Interval = Tuple[datetime, datetime]


class TimeSlot(NamedTuple):
    """A discrete slot; ``available`` is False when taken or in the past."""
    start: datetime
    end: datetime
    available: bool


def intervals_overlap(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime
) -> bool:
    """
    Half-open overlap test.

    ``[a_start, a_end)`` and ``[b_start, b_end)`` overlap when each starts
    before the other ends. Back-to-back ranges do not overlap.
    """
    return ensure_utc(a_start) < ensure_utc(b_end) and ensure_utc(b_start) < ensure_utc(a_end)


def find_conflicts(
    start: datetime,
    end: datetime,
    booked: Iterable[Interval]
) -> List[Interval]:
    """
    Return the booked intervals that overlap ``[start, end)``.

    Args:
        start: start of the candidate range
        end: end of the candidate range
        booked: existing ``(start, end)`` pairs

    Returns:
        list: overlapping pairs, in input order
    """
    return [
        (b_start, b_end)
        for b_start, b_end in booked
        if intervals_overlap(start, end, b_start, b_end)
    ]


def _localize(tz: pytz.tzinfo.BaseTzInfo, day: date, clock: time) -> datetime:
    return tz.localize(datetime.combine(day, clock)).astimezone(pytz.UTC)


def local_day_bounds(timezone_name: str, day: date) -> Interval:
    """UTC bounds of the calendar day ``day`` in ``timezone_name``."""
    tz = pytz.timezone(timezone_name)
    start = _localize(tz, day, time.min)
    end = _localize(tz, day + timedelta(days=1), time.min)
    return start, end


def working_window(settings: AvailabilitySettings, day: date) -> Optional[Interval]:
    """
    Working interval for ``day`` in UTC.

    Working hours are wall-clock times in the seller's timezone.

    Returns:
        (start, end) or None when the weekday is disabled
    """
    hours = settings.hours_for(day)
    if not hours.enabled:
        return None

    tz = pytz.timezone(settings.timezone)
    start = _localize(tz, day, parse_hhmm(hours.start))
    end = _localize(tz, day, parse_hhmm(hours.end))
    if end <= start:
        return None
    return start, end


def generate_slots(
    settings: AvailabilitySettings,
    day: date,
    booked: Sequence[Interval] = (),
    now: Optional[datetime] = None
) -> List[TimeSlot]:
    """
    Generate the slots a seller offers on ``day``.

    Algorithm:
        1. Resolve the working window for the weekday (empty if disabled)
        2. Walk from the window start; each slot lasts ``slot_duration``
           and the next one starts ``slot_duration + buffer_time`` later
        3. Stop once a slot would run past the window end
        4. Mark a slot unavailable if it overlaps a booked interval or
           does not start after ``now``

    Args:
        settings: seller availability template
        day: calendar date in the seller's timezone
        booked: ``(start, end)`` of appointments that occupy the seller
        now: reference time, defaults to the current UTC time

    Returns:
        list[TimeSlot]: slots in chronological order
    """
    window = working_window(settings, day)
    if window is None:
        return []

    window_start, window_end = window
    duration = timedelta(minutes=settings.slot_duration)
    step = duration + timedelta(minutes=settings.buffer_time)
    now = ensure_utc(now) if now is not None else utcnow()
    booked = [(ensure_utc(b_start), ensure_utc(b_end)) for b_start, b_end in booked]

    slots = []
    cursor = window_start
    while cursor < window_end:
        slot_end = cursor + duration
        if slot_end > window_end:
            break

        taken = bool(find_conflicts(cursor, slot_end, booked))
        slots.append(TimeSlot(cursor, slot_end, not taken and cursor > now))

        cursor += step

    return slots


def split_range(
    start: datetime,
    end: datetime,
    step_minutes: int,
    busy: Sequence[Interval] = ()
) -> List[TimeSlot]:
    """
    Split ``[start, end)`` into fixed steps and mark the busy ones.

    Used to turn provider free/busy blocks into slots. Only whole steps are
    returned.
    """
    if step_minutes <= 0:
        raise ValueError("step_minutes must be positive")

    start = ensure_utc(start)
    end = ensure_utc(end)
    step = timedelta(minutes=step_minutes)
    busy = [(ensure_utc(b_start), ensure_utc(b_end)) for b_start, b_end in busy]

    slots = []
    cursor = start
    while cursor + step <= end:
        slot_end = cursor + step
        slots.append(TimeSlot(cursor, slot_end, not find_conflicts(cursor, slot_end, busy)))
        cursor = slot_end

    return slots
