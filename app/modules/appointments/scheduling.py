"""Pure slot arithmetic for the shared clinic calendar.

Everything here works on plain values so it can be exercised without a database.
Intervals are half-open: ``[start, start + duration)``. Touching intervals do not
overlap.
"""
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable


@dataclass(frozen=True)
class Booking:
    day: date
    start: time
    duration_minutes: int
    id: uuid.UUID | None = None

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.day, self.start)

    @property
    def ends_at(self) -> datetime:
        return self.starts_at + timedelta(minutes=self.duration_minutes)


def parse_time(value: str | time) -> time:
    """Accepts ``HH:MM`` or ``HH:MM:SS``."""
    if isinstance(value, time):
        return value
    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"invalid time '{value}'")
    h, m = int(parts[0]), int(parts[1])
    s = int(parts[2]) if len(parts) == 3 else 0
    return time(h, m, s)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and b_start < a_end


def conflicts(candidate: Booking, existing: Iterable[Booking], exclude_id: uuid.UUID | None = None) -> bool:
    """True iff ``candidate`` intersects any booking on the same day.

    ``existing`` must already exclude cancelled appointments.
    """
    for b in existing:
        if exclude_id is not None and b.id == exclude_id:
            continue
        if b.day != candidate.day:
            continue
        if overlaps(candidate.starts_at, candidate.ends_at, b.starts_at, b.ends_at):
            return True
    return False


def _buffered_clash(start: datetime, end: datetime, b: Booking, buffer: timedelta) -> bool:
    # trailing buffer always counts; the leading one only when the slot swallows the booking
    padded_end = b.ends_at + buffer
    return (
        (b.starts_at <= start < padded_end)
        or (b.starts_at < end <= padded_end)
        or (start - buffer <= b.starts_at and end >= b.ends_at)
    )


def available_slots(
    day: date,
    duration_minutes: int,
    existing: Iterable[Booking],
    *,
    opens: time,
    closes: time,
    step_minutes: int,
    buffer_minutes: int,
) -> list[str]:
    """Grid start times (``HH:MM:SS``) where a ``duration_minutes`` visit fits.

    A slot is refused when it starts inside ``[start, end + buffer)`` of a booking,
    ends inside ``(start, end + buffer]``, or covers the whole booking once its own
    start is pulled back by the buffer. A slot ending exactly when a booking
    starts stays open. A slot must also finish by ``closes``.
    """
    if duration_minutes <= 0 or step_minutes <= 0:
        return []
    buffer = timedelta(minutes=buffer_minutes)
    same_day = [b for b in existing if b.day == day]
    length = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=step_minutes)
    day_end = datetime.combine(day, closes)

    slots: list[str] = []
    cur = datetime.combine(day, opens)
    while cur < day_end:
        end = cur + length
        if end <= day_end and not any(_buffered_clash(cur, end, b, buffer) for b in same_day):
            slots.append(cur.strftime("%H:%M:%S"))
        cur += step
    return slots
