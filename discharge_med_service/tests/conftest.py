import os
import tempfile

# must be set before medapp is imported (module-level config + checkpoint DB)
os.environ["MEDAPP_DB_DIR"] = tempfile.mkdtemp(prefix="medapp-test-")
os.environ["INTERNAL_SERVICE_SECRET"] = "test-secret"
os.environ["LLM_PROVIDER"] = "openai"
os.environ["OPENAI_API_KEY"] = "sk-test"
os.environ["LLM_MAX_RETRIES"] = "0"

from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from medapp.api.deps import get_store
from medapp.db.db_config import get_sqlite_connection
from medapp.db.store import MedicationStore

DOCTOR_ID = "doc_1"
DOCTOR_HEADERS = {"X-Internal-Key": "test-secret", "X-Actor-Id": DOCTOR_ID, "X-Actor-Role": "DOCTOR"}

def patient_headers(patient_id: str) -> Dict[str, str]:
    return {"X-Internal-Key": "test-secret", "X-Actor-Id": patient_id, "X-Actor-Role": "PATIENT"}

BULLET_RESPONSE = (
    "Here are the medications I found:\n\n"
    "MEDICATION:\n"
    "- Name: Amoxicillin\n"
    "- Dosage: 500mg\n"
    "- Frequency: three times a day\n"
    "- Duration: 7 days\n"
    "- Instructions: Take with food\n"
    "\n"
    "MEDICATION:\n"
    "- Name: Metformin\n"
    "- Dosage: 500mg\n"
    "- Frequency: twice daily\n"
)

JSON_RESPONSE = (
    "```json\n"
    '[{"name": "Lisinopril", "dosage": "10mg", "frequency": "once daily"},\n'
    ' {"name": "Atorvastatin", "dosage": "20mg", "frequency": "every night"}]\n'
    "```"
)

class FakeLLM:
    def __init__(self):
        self.response = ""
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, *, system: str, user: str, **kwargs) -> str:
        self.calls.append({"system": system, "user": user, **kwargs})
        return self.response

@pytest.fixture
def fake_llm(monkeypatch):
    fake = FakeLLM()
    monkeypatch.setattr("medapp.services.llm.extraction.chat_text", fake)
    monkeypatch.setattr("medapp.services.llm.chat.chat_text", fake)
    return fake

@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "medapp-test.db"

@pytest.fixture
def store(db_path):
    s = MedicationStore(get_sqlite_connection(db_path))
    yield s
    s.close()

@pytest.fixture
def client(db_path):
    from medapp.main import app

    def _store():
        s = MedicationStore(get_sqlite_connection(db_path))
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_store] = _store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()

@pytest.fixture
def patient(store):
    return store.create_user(
        name="Jane Doe",
        role="PATIENT",
        unique_id="P-0001",
        email="P-0001@patient.local",
        doctor_id=DOCTOR_ID,
    )
