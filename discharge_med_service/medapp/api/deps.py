# medapp/api/deps.py
from typing import Iterator

from fastapi import HTTPException

from medapp.db.db_config import get_sqlite_connection
from medapp.db.store import MedicationStore
from medapp.schemas.models import Actor, User

def get_store() -> Iterator[MedicationStore]:
    store = MedicationStore(get_sqlite_connection())
    try:
        yield store
    finally:
        store.close()

def ensure_can_access(actor: Actor, patient: User) -> None:
    """Doctors see their own patients; patients see only themselves."""
    if actor.role == "DOCTOR" and patient.doctor_id == actor.id:
        return
    if actor.role == "PATIENT" and patient.id == actor.id:
        return
    raise HTTPException(status_code=403, detail="Not allowed to access this patient")
