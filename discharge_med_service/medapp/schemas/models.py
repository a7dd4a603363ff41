from datetime import date, datetime, timezone
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, field_validator

from medapp.core.app_config import DURATION_UNSPECIFIED
from medapp.utils.clock import valid_hhmm

ActorRole = Literal["DOCTOR", "PATIENT"]
DialectName = Literal["bullet", "json"]

SAFETY_NOTE = (
    "Not medical advice. Reminder times are generated from the prescribed frequency. "
    "Always confirm instructions with a doctor/pharmacist."
)

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def _check_hhmm(v: str) -> str:
    if not valid_hhmm(v):
        raise ValueError("time must be HH:MM (24-hour, zero-padded)")
    return v

class ReminderSlot(BaseModel):
    time: str  # "HH:MM"
    enabled: bool = True
    id: Optional[str] = None  # assigned by storage

    @field_validator("time")
    @classmethod
    def _time_is_hhmm(cls, v: str) -> str:
        return _check_hhmm(v)

class Medication(BaseModel):
    name: str = Field(..., min_length=1)
    dosage: str = Field(..., min_length=1)
    frequency: str = Field(..., min_length=1, description="e.g. 'twice daily', 'after dinner', '3 times a day'")
    duration: str = DURATION_UNSPECIFIED
    instructions: str = ""
    start_date: datetime = Field(default_factory=utcnow)
    end_date: Optional[datetime] = Field(
        default=None,
        description="Null means open-ended.",
    )
    reminders: List[ReminderSlot] = Field(default_factory=list)

class StoredMedication(Medication):
    id: str
    patient_id: str

class Actor(BaseModel):
    id: str
    role: ActorRole

class User(BaseModel):
    id: str
    name: str
    role: ActorRole
    email: Optional[str] = None
    date_of_birth: Optional[date] = None
    unique_id: Optional[str] = None
    doctor_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

class PatientDetails(User):
    medications: List[StoredMedication] = Field(default_factory=list)

# ---------------------------
# Requests / responses
# ---------------------------
class PatientCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    date_of_birth: date
    unique_id: str = Field(..., min_length=1)
    email: Optional[str] = None

class MedicationCreateRequest(BaseModel):
    patient_id: str
    medication: Medication

class DischargeRequest(BaseModel):
    patient_id: str
    discharge_summary: str

class SummaryRequest(BaseModel):
    discharge_summary: str

class DischargeResponse(BaseModel):
    run_id: str
    dialect: DialectName
    medications: List[StoredMedication]
    message: str = "Discharge summary processed successfully"

class ReminderCreateRequest(BaseModel):
    time: str
    enabled: bool = True

    @field_validator("time")
    @classmethod
    def _time_is_hhmm(cls, v: str) -> str:
        return _check_hhmm(v)

class ReminderUpdateRequest(BaseModel):
    time: Optional[str] = None
    enabled: Optional[bool] = None

    @field_validator("time")
    @classmethod
    def _time_is_hhmm(cls, v: Optional[str]) -> Optional[str]:
        return _check_hhmm(v) if v is not None else v

class ReminderToggleRequest(BaseModel):
    enabled: bool

class CalendarEvent(BaseModel):
    title: str
    start: date
    end: date
    all_day: bool = True
    medication_id: Optional[str] = None

class CalendarResponse(BaseModel):
    patient_id: str
    day: date
    medications: List[StoredMedication]
    events: List[CalendarEvent]

class DueReminder(BaseModel):
    medication_id: Optional[str] = None
    name: str
    dosage: str
    frequency: str
    time: str
    reminder_id: Optional[str] = None

class DueResponse(BaseModel):
    patient_id: str
    at: datetime
    window_minutes: int
    due: List[DueReminder]

class QueryRequest(BaseModel):
    question: str = Field(..., min_length=1)
    patient_id: Optional[str] = None
    medications: Optional[List[Medication]] = None

class QueryResponse(BaseModel):
    answer: str
    safety_note: str = SAFETY_NOTE

class AuditResponse(BaseModel):
    run_id: str
    audit: List[Dict[str, Any]]
