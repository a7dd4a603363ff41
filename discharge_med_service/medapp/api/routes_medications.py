# medapp/api/routes_medications.py
import logging
from datetime import datetime

from fastapi import APIRouter, Depends

from medapp.api.deps import ensure_can_access, get_store
from medapp.db.store import MedicationStore
from medapp.schemas.models import (
    Actor,
    MedicationCreateRequest,
    ReminderCreateRequest,
    ReminderToggleRequest,
    ReminderUpdateRequest,
    StoredMedication,
)
from medapp.services.calendar import next_occurrence
from medapp.services.security import get_actor, require_doctor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/medications", tags=["medications"])

def _checked_medication(store: MedicationStore, actor: Actor, medication_id: str) -> StoredMedication:
    med = store.get_medication(medication_id)
    ensure_can_access(actor, store.get_patient(med.patient_id))
    return med

@router.post("", response_model=StoredMedication, status_code=201)
def create_medication(
    req: MedicationCreateRequest,
    doctor: Actor = Depends(require_doctor),
    store: MedicationStore = Depends(get_store),
):
    ensure_can_access(doctor, store.get_patient(req.patient_id))
    return store.create_medication(req.patient_id, req.medication)

@router.post("/{medication_id}/reminders", response_model=StoredMedication)
def add_reminder(
    medication_id: str,
    req: ReminderCreateRequest,
    actor: Actor = Depends(get_actor),
    store: MedicationStore = Depends(get_store),
):
    _checked_medication(store, actor, medication_id)
    logger.info("Adding reminder for medication %s at %s", medication_id, req.time)
    return store.add_reminder(medication_id, req.time, enabled=req.enabled)

@router.put("/{medication_id}/reminders/{reminder_id}", response_model=StoredMedication)
def update_reminder(
    medication_id: str,
    reminder_id: str,
    req: ReminderUpdateRequest,
    actor: Actor = Depends(get_actor),
    store: MedicationStore = Depends(get_store),
):
    _checked_medication(store, actor, medication_id)
    return store.update_reminder(medication_id, reminder_id, time=req.time, enabled=req.enabled)

@router.delete("/{medication_id}/reminders/{reminder_id}", response_model=StoredMedication)
def delete_reminder(
    medication_id: str,
    reminder_id: str,
    actor: Actor = Depends(get_actor),
    store: MedicationStore = Depends(get_store),
):
    _checked_medication(store, actor, medication_id)
    return store.delete_reminder(medication_id, reminder_id)

@router.patch("/{medication_id}/reminders/{reminder_id}", response_model=StoredMedication)
def toggle_reminder(
    medication_id: str,
    reminder_id: str,
    req: ReminderToggleRequest,
    actor: Actor = Depends(get_actor),
    store: MedicationStore = Depends(get_store),
):
    _checked_medication(store, actor, medication_id)
    med = store.set_reminder_enabled(medication_id, reminder_id, req.enabled)

    if req.enabled:
        reminder = next(r for r in med.reminders if r.id == reminder_id)
        due_at = next_occurrence(reminder.time, datetime.now())
        logger.info("Reminder %s for %s re-enabled, next due %s", reminder_id, med.name, due_at.isoformat())
    return med
