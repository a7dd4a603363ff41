# medapp/services/scheduler.py
"""
Frequency phrase -> reminder times for one day.

Total by construction: any string yields at least one slot, unknown
phrasing falls back to the once-daily schedule.
"""
import re
from typing import Dict, List

from medapp.schemas.models import Medication, ReminderSlot
from medapp.services.errors import InvalidArgument
from medapp.utils.clock import hour_to_hhmm

REMINDER_TIMES: Dict[str, List[str]] = {
    "once daily": ["09:00"],
    "twice daily": ["09:00", "21:00"],
    "three times a day": ["09:00", "14:00", "21:00"],
    "four times a day": ["09:00", "13:00", "17:00", "21:00"],
    "every morning": ["09:00"],
    "every night": ["21:00"],
    "every evening": ["18:00"],
    "before breakfast": ["08:00"],
    "after breakfast": ["10:00"],
    "before lunch": ["12:00"],
    "after lunch": ["14:00"],
    "before dinner": ["19:00"],
    "after dinner": ["21:00"],
}
DEFAULT_FREQUENCY = "once daily"

FIRST_HOUR = 9
LAST_HOUR = 21
MAX_SLOTS_PER_DAY = 24

_TIMES_PER_DAY_RE = re.compile(r"(\d+)\s*times?\s*(daily|a day)", re.IGNORECASE)

def _evenly_spaced(times: int) -> List[str]:
    if times == 1:
        return list(REMINDER_TIMES[DEFAULT_FREQUENCY])
    times = min(times, MAX_SLOTS_PER_DAY)
    interval = (LAST_HOUR - FIRST_HOUR) // (times - 1)
    return [hour_to_hhmm(FIRST_HOUR + i * interval) for i in range(times)]

def reminder_times_for_frequency(frequency: str) -> List[str]:
    freq = frequency.lower()

    if freq in REMINDER_TIMES:
        return list(REMINDER_TIMES[freq])

    m = _TIMES_PER_DAY_RE.search(freq)
    if m:
        times = int(m.group(1))
        if times >= 1:
            return _evenly_spaced(times)

    return list(REMINDER_TIMES[DEFAULT_FREQUENCY])

def generate_reminders(frequency: str) -> List[ReminderSlot]:
    if not isinstance(frequency, str):
        raise InvalidArgument(f"frequency must be a string, got {type(frequency).__name__}")
    return [ReminderSlot(time=t, enabled=True) for t in reminder_times_for_frequency(frequency)]

def ensure_reminders(med: Medication) -> Medication:
    """Fill reminders from frequency when none are set (new or emptied)."""
    if not med.reminders:
        med.reminders = generate_reminders(med.frequency)
    return med
