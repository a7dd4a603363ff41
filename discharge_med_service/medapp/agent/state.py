from typing import Any, Dict, List, TypedDict

class DischargeState(TypedDict, total=False):
    # identity (run_id doubles as LangGraph thread_id)
    run_id: str
    patient_id: str
    dialect: str  # "bullet" | "json"

    # inputs
    discharge_summary: str

    # intermediate / outputs
    raw_response: str
    meds: List[Dict[str, Any]]  # list of Medication dicts (JSON mode)
    audit: List[Dict[str, Any]]
