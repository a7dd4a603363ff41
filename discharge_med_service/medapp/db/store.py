# medapp/db/store.py
"""
SQLite persistence for users and medications.

Reminders are stored as a JSON list on the medication row. A new medication
always gets reminders derived from its frequency, and any later save that
would leave it with none (its last reminder deleted) regenerates them.
"""
import json
import logging
import sqlite3
import uuid
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from medapp.schemas.models import (
    Medication,
    PatientDetails,
    ReminderSlot,
    StoredMedication,
    User,
    utcnow,
)
from medapp.services.scheduler import ensure_reminders, generate_reminders

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    role TEXT NOT NULL CHECK (role IN ('DOCTOR', 'PATIENT')),
    email TEXT UNIQUE,
    date_of_birth TEXT,
    unique_id TEXT UNIQUE,
    doctor_id TEXT REFERENCES users(id),
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS medications (
    id TEXT PRIMARY KEY,
    patient_id TEXT NOT NULL REFERENCES users(id),
    name TEXT NOT NULL,
    dosage TEXT NOT NULL,
    frequency TEXT NOT NULL,
    duration TEXT NOT NULL,
    instructions TEXT NOT NULL DEFAULT '',
    start_date TEXT NOT NULL,
    end_date TEXT,
    reminders TEXT NOT NULL DEFAULT '[]',
    active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_medications_patient ON medications(patient_id, active);
"""

class NotFoundError(LookupError):
    pass

class ConflictError(ValueError):
    pass

def _new_id(prefix: str) -> str:
    return f"{prefix}_" + uuid.uuid4().hex[:12]

def _iso(v: Optional[datetime | date]) -> Optional[str]:
    return v.isoformat() if v is not None else None

def _assign_reminder_ids(reminders: List[ReminderSlot]) -> List[ReminderSlot]:
    return [r if r.id else r.model_copy(update={"id": _new_id("rem")}) for r in reminders]

class MedicationStore:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row
        self.conn.executescript(SCHEMA)

    def close(self) -> None:
        self.conn.close()

    # ---------------------------
    # Users
    # ---------------------------
    def create_user(
        self,
        *,
        name: str,
        role: str,
        email: Optional[str] = None,
        date_of_birth: Optional[date] = None,
        unique_id: Optional[str] = None,
        doctor_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> User:
        user = User(
            id=user_id or _new_id("usr"),
            name=name,
            role=role,
            email=email,
            date_of_birth=date_of_birth,
            unique_id=unique_id,
            doctor_id=doctor_id,
        )
        try:
            with self.conn:
                self.conn.execute(
                    "INSERT INTO users (id, name, role, email, date_of_birth, unique_id, doctor_id, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (user.id, user.name, user.role, user.email, _iso(user.date_of_birth),
                     user.unique_id, user.doctor_id, _iso(user.created_at)),
                )
        except sqlite3.IntegrityError as e:
            raise ConflictError(f"User already exists: {e}") from e
        logger.info("Created %s user %s", user.role, user.id)
        return user

    def get_user(self, user_id: str) -> User:
        row = self.conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"User {user_id} not found")
        return User(**dict(row))

    def get_patient(self, patient_id: str) -> User:
        user = self.get_user(patient_id)
        if user.role != "PATIENT":
            raise NotFoundError(f"Patient {patient_id} not found")
        return user

    def get_patient_details(self, patient_id: str) -> PatientDetails:
        patient = self.get_patient(patient_id)
        return PatientDetails(**patient.model_dump(), medications=self.list_medications(patient_id))

    def list_patients(self, doctor_id: str) -> List[PatientDetails]:
        rows = self.conn.execute(
            "SELECT id FROM users WHERE role = 'PATIENT' AND doctor_id = ? ORDER BY created_at",
            (doctor_id,),
        ).fetchall()
        return [self.get_patient_details(r["id"]) for r in rows]

    # ---------------------------
    # Medications
    # ---------------------------
    def _row_to_med(self, row: sqlite3.Row) -> StoredMedication:
        d: Dict[str, Any] = dict(row)
        d["reminders"] = json.loads(d["reminders"] or "[]")
        d.pop("active", None)
        d.pop("created_at", None)
        return StoredMedication(**d)

    def _insert(self, patient_id: str, med: Medication) -> StoredMedication:
        med = med.model_copy(update={"reminders": generate_reminders(med.frequency)})
        stored = StoredMedication(
            **med.model_dump(exclude={"reminders", "id", "patient_id"}),
            reminders=_assign_reminder_ids(med.reminders),
            id=_new_id("med"),
            patient_id=patient_id,
        )
        self.conn.execute(
            "INSERT INTO medications (id, patient_id, name, dosage, frequency, duration, instructions, "
            "start_date, end_date, reminders, active, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1, ?)",
            (stored.id, patient_id, stored.name, stored.dosage, stored.frequency, stored.duration,
             stored.instructions, _iso(stored.start_date), _iso(stored.end_date),
             json.dumps([r.model_dump() for r in stored.reminders]), _iso(utcnow())),
        )
        return stored

    def save_medications(self, patient_id: str, meds: List[Medication], replace: bool = False) -> List[StoredMedication]:
        """All-or-nothing write. `replace` deactivates the patient's current list first."""
        self.get_patient(patient_id)
        with self.conn:
            if replace:
                self.conn.execute(
                    "UPDATE medications SET active = 0 WHERE patient_id = ? AND active = 1", (patient_id,)
                )
            saved = [self._insert(patient_id, m) for m in meds]
        logger.info("Saved %d medications for patient %s (replace=%s)", len(saved), patient_id, replace)
        return saved

    def create_medication(self, patient_id: str, med: Medication) -> StoredMedication:
        return self.save_medications(patient_id, [med])[0]

    def get_medication(self, medication_id: str) -> StoredMedication:
        row = self.conn.execute("SELECT * FROM medications WHERE id = ?", (medication_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"Medication {medication_id} not found")
        return self._row_to_med(row)

    def list_medications(self, patient_id: str) -> List[StoredMedication]:
        rows = self.conn.execute(
            "SELECT * FROM medications WHERE patient_id = ? AND active = 1 ORDER BY created_at, rowid",
            (patient_id,),
        ).fetchall()
        return [self._row_to_med(r) for r in rows]

    # ---------------------------
    # Reminders
    # ---------------------------
    def _save_reminders(self, med: StoredMedication) -> StoredMedication:
        med = ensure_reminders(med)
        med.reminders = _assign_reminder_ids(med.reminders)
        with self.conn:
            self.conn.execute(
                "UPDATE medications SET reminders = ? WHERE id = ?",
                (json.dumps([r.model_dump() for r in med.reminders]), med.id),
            )
        return med

    def _find_reminder(self, med: StoredMedication, reminder_id: str) -> ReminderSlot:
        for r in med.reminders:
            if r.id == reminder_id:
                return r
        raise NotFoundError(f"Reminder {reminder_id} not found")

    def add_reminder(self, medication_id: str, time: str, enabled: bool = True) -> StoredMedication:
        med = self.get_medication(medication_id)
        med.reminders.append(ReminderSlot(time=time, enabled=enabled))
        return self._save_reminders(med)

    def update_reminder(
        self,
        medication_id: str,
        reminder_id: str,
        time: Optional[str] = None,
        enabled: Optional[bool] = None,
    ) -> StoredMedication:
        med = self.get_medication(medication_id)
        reminder = self._find_reminder(med, reminder_id)
        if time is not None:
            reminder.time = ReminderSlot(time=time).time
        if enabled is not None:
            reminder.enabled = enabled
        return self._save_reminders(med)

    def delete_reminder(self, medication_id: str, reminder_id: str) -> StoredMedication:
        med = self.get_medication(medication_id)
        self._find_reminder(med, reminder_id)
        med.reminders = [r for r in med.reminders if r.id != reminder_id]
        return self._save_reminders(med)

    def set_reminder_enabled(self, medication_id: str, reminder_id: str, enabled: bool) -> StoredMedication:
        return self.update_reminder(medication_id, reminder_id, enabled=enabled)
