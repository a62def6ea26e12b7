"""
Availability Evaluator

Decides whether a candidate instant falls inside a doctor's recurring weekly
availability. Candidates arrive in UTC and are judged against the clinic's
civil timezone, so weekday and time-of-day are always local to the clinic.

Only the first slot matching the weekday is consulted. Several slots on the
same day are stored and returned, but they are not merged into a union.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional
import re

import pytz

from ..core.config import settings

WEEKDAYS = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"
)

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


@dataclass(frozen=True)
class AvailabilityResult:
    allowed: bool
    reason: Optional[str] = None


def time_to_minutes(value: str) -> int:
    """Convert an ``HH:MM`` string to minutes since midnight."""
    match = _TIME_RE.match(value or "")
    if not match:
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    return int(match.group(1)) * 60 + int(match.group(2))


def as_utc(instant: datetime) -> datetime:
    """Return an aware UTC datetime; naive input is taken to be UTC."""
    if instant.tzinfo is None:
        return pytz.utc.localize(instant)
    return instant.astimezone(pytz.utc)


def to_naive_utc(instant: datetime) -> datetime:
    """Storage form of an instant: UTC with tzinfo stripped."""
    return as_utc(instant).replace(tzinfo=None)


def to_clinic_time(instant: datetime, timezone: Optional[str] = None) -> datetime:
    tz = pytz.timezone(timezone or settings.CLINIC_TIMEZONE)
    return as_utc(instant).astimezone(tz)


def _slot_field(slot: Any, name: str) -> str:
    if isinstance(slot, Mapping):
        return slot[name]
    return getattr(slot, name)


def is_within_range(candidate_minutes: int, start_minutes: int, end_minutes: int) -> bool:
    """Half-open ``[start, end)`` check; ``start > end`` wraps past midnight."""
    if start_minutes < end_minutes:
        return start_minutes <= candidate_minutes < end_minutes
    return candidate_minutes >= start_minutes or candidate_minutes < end_minutes


def is_within_availability(
    availability: Optional[Iterable[Any]],
    candidate: datetime,
    timezone: Optional[str] = None,
) -> AvailabilityResult:
    """
    Check a candidate instant against a doctor's weekly slots.

    Args:
        availability: ordered slots exposing ``day``, ``start_time`` and
            ``end_time`` (ORM rows, schema objects or plain dicts). ``None``
            means the doctor could not be resolved.
        candidate: the proposed instant, UTC (naive values are read as UTC).
        timezone: civil timezone name, defaults to ``CLINIC_TIMEZONE``.

    Returns:
        AvailabilityResult with a human-readable reason when rejected.
    """
    slots = list(availability or [])
    if not slots:
        return AvailabilityResult(False, "Doctor not found or has no availability")

    local = to_clinic_time(candidate, timezone)
    day_name = WEEKDAYS[local.weekday()]
    candidate_minutes = local.hour * 60 + local.minute

    slot = next((s for s in slots if _slot_field(s, "day") == day_name), None)
    if slot is None:
        return AvailabilityResult(False, f"Doctor is not available on {day_name}.")

    start_time = _slot_field(slot, "start_time")
    end_time = _slot_field(slot, "end_time")
    if is_within_range(
        candidate_minutes, time_to_minutes(start_time), time_to_minutes(end_time)
    ):
        return AvailabilityResult(True)

    return AvailabilityResult(
        False,
        "Doctor is not available at the specified time. "
        f"Available hours on {day_name}: {start_time} to {end_time} "
        f"({local.strftime('%Z')}).",
    )
