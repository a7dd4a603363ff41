import os
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import pandas as pd
import requests
import streamlit as st
from dotenv import load_dotenv

load_dotenv()

st.set_page_config(page_title="Discharge Medication Reminders Demo", layout="wide")

# ---------------------------
# Config
# ---------------------------
DEFAULT_API_BASE = "http://127.0.0.1:8000"
API_BASE = st.sidebar.text_input("API Base URL", value=DEFAULT_API_BASE)
INTERNAL_KEY = st.sidebar.text_input("X-Internal-Key", value=os.getenv("INTERNAL_SERVICE_SECRET", ""), type="password")
ACTOR_ID = st.sidebar.text_input("X-Actor-Id (doctor)", value="doc_demo")
ACTOR_ROLE = st.sidebar.selectbox("X-Actor-Role", ["DOCTOR", "PATIENT"])

# ---------------------------
# Helpers (API)
# ---------------------------
def _headers() -> Dict[str, str]:
    return {"X-Internal-Key": INTERNAL_KEY, "X-Actor-Id": ACTOR_ID, "X-Actor-Role": ACTOR_ROLE}

def api_call(method: str, path: str, payload: Optional[Dict[str, Any]] = None,
             params: Optional[Dict[str, Any]] = None) -> Any:
    url = f"{API_BASE}{path}"
    # extraction waits on the model, give it room
    r = requests.request(method, url, json=payload, params=params or {}, headers=_headers(), timeout=120)
    if r.status_code >= 400:
        raise RuntimeError(f"{r.status_code} {r.text}")
    return r.json()

def reminders_frame(meds: List[Dict[str, Any]]) -> pd.DataFrame:
    rows = [
        {
            "medication_id": m["id"],
            "name": m["name"],
            "reminder_id": r.get("id"),
            "time": r["time"],
            "enabled": r["enabled"],
        }
        for m in meds
        for r in m.get("reminders", [])
    ]
    return pd.DataFrame(rows, columns=["medication_id", "name", "reminder_id", "time", "enabled"])

# ---------------------------
# Session state
# ---------------------------
if "patient_id" not in st.session_state:
    st.session_state.patient_id = ""
if "last_run" not in st.session_state:
    st.session_state.last_run = None

def load_patient() -> Optional[Dict[str, Any]]:
    if not st.session_state.patient_id:
        return None
    try:
        return api_call("GET", f"/patients/{st.session_state.patient_id}")
    except Exception as e:
        st.error(str(e))
        return None

# ---------------------------
# UI
# ---------------------------
st.title("💊 Discharge Medication Reminders - Demo (Streamlit)")

col_left, col_right = st.columns([1.2, 1])

with col_right:
    st.subheader("Patient")

    if ACTOR_ROLE == "DOCTOR":
        try:
            patients = api_call("GET", "/patients")
        except Exception as e:
            patients = []
            st.caption(f"Could not list patients: {e}")
        options = {f"{p['name']} ({p['unique_id']})": p["id"] for p in patients}
        if options:
            label = st.selectbox("Select patient", list(options.keys()))
            st.session_state.patient_id = options[label]

        with st.expander("Add patient"):
            name = st.text_input("Name", value="Jane Doe")
            dob = st.date_input("Date of birth", value=date(1960, 1, 1))
            unique_id = st.text_input("Unique ID", value="P-0001")
            if st.button("➕ Add patient (/patients)"):
                try:
                    p = api_call("POST", "/patients", {
                        "name": name, "date_of_birth": dob.isoformat(), "unique_id": unique_id,
                    })
                    st.session_state.patient_id = p["id"]
                    st.success("Patient added.")
                    st.rerun()
                except Exception as e:
                    st.error(str(e))
    else:
        st.session_state.patient_id = ACTOR_ID

    if st.session_state.patient_id:
        st.code(st.session_state.patient_id)

    if st.session_state.last_run:
        st.divider()
        st.subheader("Last extraction run")
        st.code(st.session_state.last_run)
        if st.button("🧾 Load audit (/discharge/audit)"):
            try:
                st.json(api_call("GET", "/discharge/audit", params={"run_id": st.session_state.last_run}))
            except Exception as e:
                st.error(str(e))

with col_left:
    st.subheader("1) Discharge summary")

    summary = st.text_area(
        "Discharge summary",
        value=(
            "Patient discharged after community-acquired pneumonia.\n"
            "Continue amoxicillin 500mg three times a day for 7 days, take with food.\n"
            "Metformin 500mg twice daily."
        ),
        height=160,
    )
    st.caption(f"{len(summary)} / 10000 characters")

    dialect = st.radio("Response format", ["bullet (adds medications)", "json (replaces medications)"])

    if st.button("🚀 Extract medications"):
        if not st.session_state.patient_id:
            st.warning("Select or add a patient first.")
        else:
            try:
                if dialect.startswith("bullet"):
                    resp = api_call("POST", "/discharge/process", {
                        "patient_id": st.session_state.patient_id,
                        "discharge_summary": summary,
                    })
                else:
                    resp = api_call("POST", f"/patients/{st.session_state.patient_id}/process-summary", {
                        "discharge_summary": summary,
                    })
                st.session_state.last_run = resp["run_id"]
                st.success(f"Extracted {len(resp['medications'])} medication(s).")
            except Exception as e:
                st.error(str(e))

patient = load_patient()
meds = (patient or {}).get("medications", [])

# ---------------------------
# Medications + reminders
# ---------------------------
st.divider()
st.subheader("2) Medications")

if meds:
    med_df = pd.DataFrame(meds)[["name", "dosage", "frequency", "duration", "instructions", "start_date", "end_date"]]
    med_df["end_date"] = med_df["end_date"].fillna("Ongoing")
    st.dataframe(med_df, use_container_width=True)
else:
    st.info("No medications yet.")

st.subheader("3) Reminders")
rem_df = reminders_frame(meds)
if not rem_df.empty:
    edited = st.data_editor(
        rem_df,
        use_container_width=True,
        num_rows="fixed",
        disabled=["medication_id", "name", "reminder_id"],
        key="reminders_editor",
    )

    if st.button("💾 Save reminder changes"):
        changed = 0
        for (_, before), (_, after) in zip(rem_df.iterrows(), edited.iterrows()):
            path = f"/medications/{before['medication_id']}/reminders/{before['reminder_id']}"
            try:
                if bool(after["enabled"]) != bool(before["enabled"]) and str(after["time"]) == str(before["time"]):
                    api_call("PATCH", path, {"enabled": bool(after["enabled"])})
                    changed += 1
                elif str(after["time"]) != str(before["time"]) or bool(after["enabled"]) != bool(before["enabled"]):
                    api_call("PUT", path, {"time": str(after["time"]), "enabled": bool(after["enabled"])})
                    changed += 1
            except Exception as e:
                st.error(str(e))
        st.success(f"Updated {changed} reminder(s).")
        st.rerun()

    rcol1, rcol2 = st.columns(2)
    with rcol1:
        med_options = {m["name"]: m["id"] for m in meds}
        med_label = st.selectbox("Medication", list(med_options.keys()))
        new_time = st.text_input("New reminder time (HH:MM)", value="12:00")
        if st.button("➕ Add reminder"):
            try:
                api_call("POST", f"/medications/{med_options[med_label]}/reminders", {"time": new_time})
                st.rerun()
            except Exception as e:
                st.error(str(e))
    with rcol2:
        rem_options = {f"{r['name']} @ {r['time']}": (r["medication_id"], r["reminder_id"]) for _, r in rem_df.iterrows()}
        rem_label = st.selectbox("Reminder", list(rem_options.keys()))
        if st.button("🗑️ Delete reminder"):
            mid, rid = rem_options[rem_label]
            try:
                api_call("DELETE", f"/medications/{mid}/reminders/{rid}")
                st.rerun()
            except Exception as e:
                st.error(str(e))
else:
    st.caption("Reminders appear once medications are extracted.")

# ---------------------------
# Calendar + due now
# ---------------------------
st.divider()
st.subheader("4) Calendar")

if st.session_state.patient_id:
    ccol1, ccol2 = st.columns(2)
    with ccol1:
        day = st.date_input("Day", value=date.today())
        try:
            cal = api_call("GET", f"/patients/{st.session_state.patient_id}/calendar", params={"day": day.isoformat()})
            if cal["events"]:
                st.dataframe(pd.DataFrame(cal["events"]), use_container_width=True)
            st.write(f"**{len(cal['medications'])}** medication(s) active on {day.isoformat()}")
        except Exception as e:
            st.error(str(e))
    with ccol2:
        if st.button("🔔 What's due now?"):
            try:
                due = api_call("GET", f"/patients/{st.session_state.patient_id}/due",
                               params={"at": datetime.now().isoformat(timespec="minutes")})
                if due["due"]:
                    for d in due["due"]:
                        st.info(f"Time for {d['name']}: take {d['dosage']} ({d['frequency']}) at {d['time']}")
                else:
                    st.caption("No medications due right now.")
            except Exception as e:
                st.error(str(e))

# ---------------------------
# Question answering
# ---------------------------
st.divider()
st.subheader("5) Ask about the prescription")

question = st.text_input("Question", value="When should I take my metformin?")
if st.button("🔎 Ask (/chat/prescription)"):
    if not st.session_state.patient_id:
        st.warning("No patient selected.")
    else:
        try:
            resp = api_call("POST", "/chat/prescription", {
                "patient_id": st.session_state.patient_id,
                "question": question,
            })
            st.write(resp["answer"])
            st.caption(resp["safety_note"])
        except Exception as e:
            st.error(str(e))
