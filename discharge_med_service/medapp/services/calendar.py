# medapp/services/calendar.py
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence

from medapp.core.app_config import DUE_WINDOW_MINUTES, OPEN_ENDED_DAYS
from medapp.schemas.models import CalendarEvent, DueReminder, Medication
from medapp.utils.clock import hhmm_to_minutes

def effective_end_date(med: Medication, today: Optional[date] = None) -> date:
    """Open-ended medications run until today + OPEN_ENDED_DAYS for display."""
    if med.end_date is not None:
        return med.end_date.date()
    return (today or date.today()) + timedelta(days=OPEN_ENDED_DAYS)

def medications_for_date(meds: Sequence[Medication], day: date, today: Optional[date] = None) -> List[Medication]:
    return [
        m for m in meds
        if m.start_date.date() <= day <= effective_end_date(m, today)
    ]

def calendar_events(meds: Sequence[Medication], today: Optional[date] = None) -> List[CalendarEvent]:
    return [
        CalendarEvent(
            title=f"{m.name} - {m.dosage}",
            start=m.start_date.date(),
            end=effective_end_date(m, today),
            medication_id=getattr(m, "id", None),
        )
        for m in meds
    ]

def due_reminders(
    meds: Sequence[Medication],
    now: datetime,
    window_minutes: int = DUE_WINDOW_MINUTES,
) -> List[DueReminder]:
    """Enabled reminders in the current hour whose minute is within the window."""
    due: List[DueReminder] = []
    for m in meds:
        for r in m.reminders:
            if not r.enabled:
                continue
            mins = hhmm_to_minutes(r.time)
            if mins // 60 != now.hour or abs(mins % 60 - now.minute) > window_minutes:
                continue
            due.append(DueReminder(
                medication_id=getattr(m, "id", None),
                name=m.name,
                dosage=m.dosage,
                frequency=m.frequency,
                time=r.time,
                reminder_id=r.id,
            ))
    return due

def next_occurrence(hhmm: str, now: datetime) -> datetime:
    """Today at hhmm, or tomorrow if that time has already passed."""
    mins = hhmm_to_minutes(hhmm)
    candidate = now.replace(hour=mins // 60, minute=mins % 60, second=0, microsecond=0)
    if candidate < now:
        candidate += timedelta(days=1)
    return candidate
