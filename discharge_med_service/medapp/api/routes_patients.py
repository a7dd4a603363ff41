# medapp/api/routes_patients.py
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends

from medapp.api.deps import ensure_can_access, get_store
from medapp.core.app_config import DUE_WINDOW_MINUTES
from medapp.db.store import MedicationStore
from medapp.schemas.models import (
    Actor,
    CalendarResponse,
    DueResponse,
    PatientCreateRequest,
    PatientDetails,
    User,
)
from medapp.services.calendar import calendar_events, due_reminders, medications_for_date
from medapp.services.security import get_actor, require_doctor

router = APIRouter(prefix="/patients", tags=["patients"])

@router.post("", response_model=User, status_code=201)
def create_patient(
    req: PatientCreateRequest,
    doctor: Actor = Depends(require_doctor),
    store: MedicationStore = Depends(get_store),
):
    return store.create_user(
        name=req.name,
        role="PATIENT",
        email=req.email or f"{req.unique_id}@patient.local",
        date_of_birth=req.date_of_birth,
        unique_id=req.unique_id,
        doctor_id=doctor.id,
    )

@router.get("", response_model=List[PatientDetails])
def list_patients(
    doctor: Actor = Depends(require_doctor),
    store: MedicationStore = Depends(get_store),
):
    return store.list_patients(doctor.id)

@router.get("/{patient_id}", response_model=PatientDetails)
def get_patient(
    patient_id: str,
    actor: Actor = Depends(get_actor),
    store: MedicationStore = Depends(get_store),
):
    details = store.get_patient_details(patient_id)
    ensure_can_access(actor, details)
    return details

@router.get("/{patient_id}/calendar", response_model=CalendarResponse)
def patient_calendar(
    patient_id: str,
    day: Optional[date] = None,
    actor: Actor = Depends(get_actor),
    store: MedicationStore = Depends(get_store),
):
    details = store.get_patient_details(patient_id)
    ensure_can_access(actor, details)

    today = date.today()
    day = day or today
    return CalendarResponse(
        patient_id=patient_id,
        day=day,
        medications=medications_for_date(details.medications, day, today=today),
        events=calendar_events(details.medications, today=today),
    )

@router.get("/{patient_id}/due", response_model=DueResponse)
def patient_due(
    patient_id: str,
    at: Optional[datetime] = None,
    window_minutes: int = DUE_WINDOW_MINUTES,
    actor: Actor = Depends(get_actor),
    store: MedicationStore = Depends(get_store),
):
    details = store.get_patient_details(patient_id)
    ensure_can_access(actor, details)

    at = at or datetime.now()
    return DueResponse(
        patient_id=patient_id,
        at=at,
        window_minutes=window_minutes,
        due=due_reminders(details.medications, at, window_minutes=window_minutes),
    )
