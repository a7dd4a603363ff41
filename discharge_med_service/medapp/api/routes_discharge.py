# medapp/api/routes_discharge.py
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from medapp.agent.graph import run_audit, run_discharge_extraction
from medapp.api.deps import ensure_can_access, get_store
from medapp.db.store import MedicationStore
from medapp.schemas.models import (
    Actor,
    AuditResponse,
    DischargeRequest,
    DischargeResponse,
    SummaryRequest,
)
from medapp.services.errors import (
    ExtractionError,
    InputValidationError,
    MalformedResponse,
    MissingField,
)
from medapp.services.llm_client import LLMServiceError, ensure_llm_configured
from medapp.services.normalizer import Dialect, validate_discharge_summary
from medapp.services.security import require_doctor

logger = logging.getLogger(__name__)

router = APIRouter(tags=["discharge"])

def _error_response(e: Exception) -> HTTPException:
    if isinstance(e, InputValidationError):
        return HTTPException(status_code=400, detail={
            "error": "Invalid input",
            "details": e.detail,
            "type": "VALIDATION_ERROR",
        })

    if isinstance(e, LLMServiceError):
        if not e.configured:
            return HTTPException(status_code=500, detail={
                "error": "Server configuration error",
                "details": e.details,
                "type": "SERVER_ERROR",
            })
        return HTTPException(status_code=502, detail={
            "error": e.message,
            "details": e.details,
            "status": e.status_code,
            "type": "AI_SERVICE_ERROR",
        })

    if isinstance(e, ExtractionError):
        body: Dict[str, Any] = {
            "error": "Processing error",
            "details": e.detail,
            "type": "PROCESSING_ERROR",
            "kind": e.kind,
        }
        if isinstance(e, MissingField):
            body["missing"] = e.missing
        if isinstance(e, MalformedResponse):
            body["raw_response"] = e.raw_text
        return HTTPException(status_code=502, detail=body)

    raise TypeError(f"Unhandled error type {type(e).__name__}")

def _process(
    store: MedicationStore,
    doctor: Actor,
    patient_id: str,
    summary: str,
    dialect: Dialect,
    replace: bool,
) -> DischargeResponse:
    try:
        validate_discharge_summary(summary)
    except InputValidationError as e:
        logger.warning("Rejected discharge summary for patient %s: %s", patient_id, e.detail)
        raise _error_response(e)

    patient = store.get_patient(patient_id)
    ensure_can_access(doctor, patient)

    try:
        ensure_llm_configured()
        run_id, meds = run_discharge_extraction(summary, patient_id, dialect)
    except (ExtractionError, LLMServiceError) as e:
        logger.error("Discharge processing failed for patient %s: %s", patient_id, e)
        raise _error_response(e)

    saved = store.save_medications(patient_id, meds, replace=replace)
    return DischargeResponse(run_id=run_id, dialect=dialect.value, medications=saved)

@router.post("/discharge/process", response_model=DischargeResponse)
def process_discharge(
    req: DischargeRequest,
    doctor: Actor = Depends(require_doctor),
    store: MedicationStore = Depends(get_store),
):
    """Bullet-format extraction; adds to the patient's current medications."""
    return _process(store, doctor, req.patient_id, req.discharge_summary, Dialect.BULLET, replace=False)

@router.post("/patients/{patient_id}/process-summary", response_model=DischargeResponse)
def process_summary(
    patient_id: str,
    req: SummaryRequest,
    doctor: Actor = Depends(require_doctor),
    store: MedicationStore = Depends(get_store),
):
    """JSON-format extraction; replaces the patient's current medications."""
    return _process(store, doctor, patient_id, req.discharge_summary, Dialect.JSON, replace=True)

@router.get("/discharge/audit", response_model=AuditResponse)
def discharge_audit(run_id: str, _: Actor = Depends(require_doctor)):
    return AuditResponse(run_id=run_id, audit=run_audit(run_id))
