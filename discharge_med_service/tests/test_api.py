from datetime import datetime, timedelta

from medapp.services.llm.prompts import BULLET_SYSTEM_PROMPT, JSON_SYSTEM_PROMPT

from conftest import BULLET_RESPONSE, DOCTOR_HEADERS, JSON_RESPONSE, patient_headers

SUMMARY = (
    "Patient discharged after pneumonia. Continue amoxicillin 500mg three times a day for 7 days "
    "and metformin 500mg twice daily."
)


def _dt(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _meds(client, patient_id, headers=DOCTOR_HEADERS):
    r = client.get(f"/patients/{patient_id}", headers=headers)
    assert r.status_code == 200
    return r.json()["medications"]


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


# ---------------------------
# Patients
# ---------------------------
def test_create_patient_and_duplicate(client):
    body = {"name": "John Roe", "date_of_birth": "1950-04-02", "unique_id": "P-77"}
    r = client.post("/patients", json=body, headers=DOCTOR_HEADERS)
    assert r.status_code == 201
    created = r.json()
    assert created["role"] == "PATIENT"
    assert created["email"] == "P-77@patient.local"
    assert created["doctor_id"] == "doc_1"

    listed = client.get("/patients", headers=DOCTOR_HEADERS).json()
    assert [p["id"] for p in listed] == [created["id"]]

    dup = client.post("/patients", json=body, headers=DOCTOR_HEADERS)
    assert dup.status_code == 400


def test_bad_internal_key_is_unauthorized(client, patient):
    headers = {**DOCTOR_HEADERS, "X-Internal-Key": "wrong"}
    assert client.get(f"/patients/{patient.id}", headers=headers).status_code == 401


def test_patient_sees_only_themselves(client, patient, store):
    other = store.create_user(name="Other", role="PATIENT", unique_id="P-2", doctor_id="doc_1")

    assert client.get(f"/patients/{patient.id}", headers=patient_headers(patient.id)).status_code == 200
    assert client.get(f"/patients/{other.id}", headers=patient_headers(patient.id)).status_code == 403
    assert client.get("/patients", headers=patient_headers(patient.id)).status_code == 403


def test_other_doctor_cannot_access_patient(client, patient):
    headers = {**DOCTOR_HEADERS, "X-Actor-Id": "doc_2"}
    assert client.get(f"/patients/{patient.id}", headers=headers).status_code == 403


def test_unknown_patient_is_404(client):
    assert client.get("/patients/usr_missing", headers=DOCTOR_HEADERS).status_code == 404


# ---------------------------
# Discharge processing
# ---------------------------
def test_bullet_processing_end_to_end(client, patient, fake_llm):
    fake_llm.response = BULLET_RESPONSE
    r = client.post(
        "/discharge/process",
        json={"patient_id": patient.id, "discharge_summary": SUMMARY},
        headers=DOCTOR_HEADERS,
    )
    assert r.status_code == 200
    body = r.json()
    assert body["dialect"] == "bullet"
    assert body["message"] == "Discharge summary processed successfully"

    meds = body["medications"]
    assert [m["name"] for m in meds] == ["Amoxicillin", "Metformin"]
    assert [s["time"] for s in meds[0]["reminders"]] == ["09:00", "14:00", "21:00"]
    assert [s["time"] for s in meds[1]["reminders"]] == ["09:00", "21:00"]
    assert meds[0]["end_date"] is None
    assert meds[1]["duration"] == "Duration not specified"
    assert all(s["enabled"] and s["id"] for m in meds for s in m["reminders"])

    assert len(fake_llm.calls) == 1
    assert fake_llm.calls[0]["system"] == BULLET_SYSTEM_PROMPT
    assert fake_llm.calls[0]["user"].endswith(SUMMARY)

    assert [m["id"] for m in _meds(client, patient.id)] == [m["id"] for m in meds]


def test_bullet_processing_adds_to_existing(client, patient, fake_llm):
    fake_llm.response = BULLET_RESPONSE
    for _ in range(2):
        client.post("/discharge/process", json={"patient_id": patient.id, "discharge_summary": SUMMARY},
                    headers=DOCTOR_HEADERS)
    assert len(_meds(client, patient.id)) == 4


def test_json_processing_replaces_medications(client, patient, fake_llm):
    fake_llm.response = BULLET_RESPONSE
    client.post("/discharge/process", json={"patient_id": patient.id, "discharge_summary": SUMMARY},
                headers=DOCTOR_HEADERS)

    fake_llm.response = JSON_RESPONSE
    r = client.post(f"/patients/{patient.id}/process-summary", json={"discharge_summary": SUMMARY},
                    headers=DOCTOR_HEADERS)
    assert r.status_code == 200
    body = r.json()
    assert body["dialect"] == "json"
    assert fake_llm.calls[-1]["system"] == JSON_SYSTEM_PROMPT

    meds = body["medications"]
    lisinopril, atorvastatin = meds
    assert lisinopril["instructions"] == "Take 10mg once daily"
    assert [s["time"] for s in lisinopril["reminders"]] == ["09:00"]
    assert [s["time"] for s in atorvastatin["reminders"]] == ["21:00"]
    start = _dt(lisinopril["start_date"])
    end = _dt(lisinopril["end_date"])
    assert end - start == timedelta(days=7)

    assert [m["name"] for m in _meds(client, patient.id)] == ["Lisinopril", "Atorvastatin"]


def test_oversized_summary_never_reaches_model(client, patient, fake_llm):
    r = client.post(
        "/discharge/process",
        json={"patient_id": patient.id, "discharge_summary": "x" * 10001},
        headers=DOCTOR_HEADERS,
    )
    assert r.status_code == 400
    assert r.json()["detail"]["type"] == "VALIDATION_ERROR"
    assert fake_llm.calls == []


def test_blank_summary_is_rejected(client, patient, fake_llm):
    r = client.post(f"/patients/{patient.id}/process-summary", json={"discharge_summary": "   "},
                    headers=DOCTOR_HEADERS)
    assert r.status_code == 400
    assert fake_llm.calls == []


def test_missing_field_stores_nothing(client, patient, fake_llm):
    fake_llm.response = BULLET_RESPONSE + "\nMEDICATION:\n- Name: Mystery pill\n- Dosage: 1 tab\n"
    r = client.post("/discharge/process", json={"patient_id": patient.id, "discharge_summary": SUMMARY},
                    headers=DOCTOR_HEADERS)

    assert r.status_code == 502
    detail = r.json()["detail"]
    assert detail["type"] == "PROCESSING_ERROR"
    assert detail["missing"] == ["frequency"]
    assert _meds(client, patient.id) == []


def test_malformed_json_returns_raw_response(client, patient, fake_llm):
    fake_llm.response = '```json\n[{"name": "Lisinopril", "dosage": "10mg"'
    r = client.post(f"/patients/{patient.id}/process-summary", json={"discharge_summary": SUMMARY},
                    headers=DOCTOR_HEADERS)

    assert r.status_code == 502
    detail = r.json()["detail"]
    assert detail["type"] == "PROCESSING_ERROR"
    assert detail["raw_response"] == fake_llm.response
    assert _meds(client, patient.id) == []


def test_no_medications_found(client, patient, fake_llm):
    fake_llm.response = "No medications were mentioned."
    r = client.post("/discharge/process", json={"patient_id": patient.id, "discharge_summary": SUMMARY},
                    headers=DOCTOR_HEADERS)
    assert r.status_code == 502
    assert r.json()["detail"]["details"] == "No valid medications could be parsed"


def test_unconfigured_llm_is_server_error(client, patient, fake_llm, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "")
    r = client.post("/discharge/process", json={"patient_id": patient.id, "discharge_summary": SUMMARY},
                    headers=DOCTOR_HEADERS)
    assert r.status_code == 500
    assert r.json()["detail"]["type"] == "SERVER_ERROR"
    assert fake_llm.calls == []


def test_patient_cannot_process_summary(client, patient, fake_llm):
    r = client.post("/discharge/process", json={"patient_id": patient.id, "discharge_summary": SUMMARY},
                    headers=patient_headers(patient.id))
    assert r.status_code == 403


def test_audit_trail(client, patient, fake_llm):
    fake_llm.response = BULLET_RESPONSE
    run_id = client.post("/discharge/process", json={"patient_id": patient.id, "discharge_summary": SUMMARY},
                         headers=DOCTOR_HEADERS).json()["run_id"]

    audit = client.get("/discharge/audit", params={"run_id": run_id}, headers=DOCTOR_HEADERS).json()["audit"]
    assert [a["event"] for a in audit] == ["generate.done", "normalize.done", "schedule.done"]
    assert audit[1]["count"] == 2
    assert audit[2]["reminders"] == 5


# ---------------------------
# Medications and reminders
# ---------------------------
def _create_med(client, patient_id, **med):
    payload = {"name": "Metformin", "dosage": "500mg", "frequency": "twice daily", **med}
    r = client.post("/medications", json={"patient_id": patient_id, "medication": payload}, headers=DOCTOR_HEADERS)
    assert r.status_code == 201
    return r.json()


def test_reminder_crud_as_patient(client, patient):
    med = _create_med(client, patient.id)
    headers = patient_headers(patient.id)
    base = f"/medications/{med['id']}/reminders"

    r = client.post(base, json={"time": "13:00"}, headers=headers)
    assert [s["time"] for s in r.json()["reminders"]] == ["09:00", "21:00", "13:00"]
    added = r.json()["reminders"][2]["id"]

    r = client.put(f"{base}/{added}", json={"time": "12:30"}, headers=headers)
    assert r.json()["reminders"][2]["time"] == "12:30"

    r = client.patch(f"{base}/{added}", json={"enabled": False}, headers=headers)
    assert r.json()["reminders"][2]["enabled"] is False
    r = client.patch(f"{base}/{added}", json={"enabled": True}, headers=headers)
    assert r.json()["reminders"][2]["enabled"] is True

    r = client.delete(f"{base}/{added}", headers=headers)
    assert [s["time"] for s in r.json()["reminders"]] == ["09:00", "21:00"]


def test_reminder_validation_and_missing_ids(client, patient):
    med = _create_med(client, patient.id)
    base = f"/medications/{med['id']}/reminders"

    assert client.post(base, json={"time": "9:00"}, headers=DOCTOR_HEADERS).status_code == 422
    assert client.put(f"{base}/rem_missing", json={"enabled": False}, headers=DOCTOR_HEADERS).status_code == 404
    assert client.delete("/medications/med_missing/reminders/rem_x", headers=DOCTOR_HEADERS).status_code == 404


def test_other_patient_cannot_edit_reminders(client, patient, store):
    other = store.create_user(name="Other", role="PATIENT", unique_id="P-3", doctor_id="doc_1")
    med = _create_med(client, patient.id)
    r = client.post(f"/medications/{med['id']}/reminders", json={"time": "10:00"}, headers=patient_headers(other.id))
    assert r.status_code == 403


# ---------------------------
# Calendar and due reminders
# ---------------------------
def test_calendar_and_due(client, patient):
    med = _create_med(client, patient.id, frequency="every night", end_date="2099-01-01T00:00:00Z")
    start = _dt(med["start_date"]).date()

    cal = client.get(f"/patients/{patient.id}/calendar", params={"day": start.isoformat()},
                     headers=DOCTOR_HEADERS).json()
    assert [m["id"] for m in cal["medications"]] == [med["id"]]
    assert cal["events"][0]["title"] == "Metformin - 500mg"
    assert cal["events"][0]["end"] == "2099-01-01"

    before = (start - timedelta(days=1)).isoformat()
    cal = client.get(f"/patients/{patient.id}/calendar", params={"day": before}, headers=DOCTOR_HEADERS).json()
    assert cal["medications"] == []

    due = client.get(f"/patients/{patient.id}/due", params={"at": "2026-03-01T21:10:00"},
                     headers=patient_headers(patient.id)).json()
    assert [d["time"] for d in due["due"]] == ["21:00"]
    assert due["window_minutes"] == 30

    due = client.get(f"/patients/{patient.id}/due", params={"at": "2026-03-01T09:00:00"},
                     headers=patient_headers(patient.id)).json()
    assert due["due"] == []


# ---------------------------
# Prescription questions
# ---------------------------
def test_question_over_stored_medications(client, patient, fake_llm):
    _create_med(client, patient.id)
    fake_llm.response = "Take metformin at 09:00 and 21:00 with meals."

    r = client.post("/chat/prescription", json={"question": "When do I take metformin?", "patient_id": patient.id},
                    headers=patient_headers(patient.id))
    assert r.status_code == 200
    body = r.json()
    assert body["answer"] == "Take metformin at 09:00 and 21:00 with meals."
    assert "Not medical advice" in body["safety_note"]
    assert "Metformin (500mg): Take twice daily." in fake_llm.calls[0]["user"]


def test_question_with_inline_medications(client, fake_llm):
    fake_llm.response = "Once a day."
    r = client.post(
        "/chat/prescription",
        json={"question": "How often?", "medications": [{"name": "A", "dosage": "1mg", "frequency": "once daily"}]},
        headers=DOCTOR_HEADERS,
    )
    assert r.json()["answer"] == "Once a day."


def test_question_needs_context(client):
    r = client.post("/chat/prescription", json={"question": "Anything?"}, headers=DOCTOR_HEADERS)
    assert r.status_code == 400
