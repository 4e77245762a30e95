"""Turns a weekly schedule window into the start times of bookable slots."""

import re

from careflow.core.errors import InvalidInput

_HHMM_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})$')
MINUTES_PER_DAY = 24 * 60


def parse_hhmm(value: str) -> int:
    """Return minutes since midnight for an ``HH:MM`` string."""
    match = _HHMM_PATTERN.match((value or '').strip())
    if not match:
        raise InvalidInput(f'Invalid time "{value}". Expected HH:MM.')

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise InvalidInput(f'Invalid time "{value}". Expected HH:MM.')

    return hour * 60 + minute


def format_hhmm(minutes: int) -> str:
    hour, minute = divmod(minutes, 60)
    return f'{hour:02d}:{minute:02d}'


def normalize_hhmm(value: str) -> str:
    return format_hhmm(parse_hhmm(value))


def slot_sort_key(slot_time: str) -> int:
    hour, minute = divmod(parse_hhmm(slot_time), 60)
    return hour * 100 + minute


def generate_slots(from_time: str | None, to_time: str | None, duration_minutes: int, enabled: bool = True) -> list[str]:
    """Generate slot start times for one day.

    Slots start at ``from_time`` and advance by ``duration_minutes`` while the
    start is strictly before ``to_time``. The last slot may run past
    ``to_time``; only its start is checked.
    """
    if not enabled or not from_time or not to_time:
        return []

    if duration_minutes is None or duration_minutes <= 0:
        raise InvalidInput('Appointment duration must be a positive number of minutes.')

    current = parse_hhmm(from_time)
    end = parse_hhmm(to_time)

    slots: list[str] = []
    while current < end:
        slots.append(format_hhmm(current))
        current += duration_minutes

    return slots


def generate_schedule_slots(schedule, duration_minutes: int) -> list[str]:
    """Generate slots for a ``WorkSchedule`` row, or none when it is missing."""
    if schedule is None:
        return []
    return generate_slots(schedule.from_time, schedule.to_time, duration_minutes, enabled=schedule.enabled)
