# medapp/api/routes_chat.py
import logging

from fastapi import APIRouter, Depends, HTTPException

from medapp.api.deps import ensure_can_access, get_store
from medapp.db.store import MedicationStore
from medapp.schemas.models import Actor, QueryRequest, QueryResponse
from medapp.services.llm.chat import answer_prescription_question
from medapp.services.llm_client import LLMServiceError
from medapp.services.security import get_actor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

@router.post("/prescription", response_model=QueryResponse)
def prescription_question(
    req: QueryRequest,
    actor: Actor = Depends(get_actor),
    store: MedicationStore = Depends(get_store),
):
    if req.medications is not None:
        meds = req.medications
    elif req.patient_id:
        ensure_can_access(actor, store.get_patient(req.patient_id))
        meds = store.list_medications(req.patient_id)
    else:
        raise HTTPException(status_code=400, detail="Provide patient_id or medications[] as context.")

    try:
        answer = answer_prescription_question(req.question, meds)
    except LLMServiceError as e:
        logger.error("Prescription question failed: %s", e.details)
        raise HTTPException(
            status_code=500 if not e.configured else 502,
            detail={"error": e.message, "details": e.details, "status": e.status_code, "type": "AI_SERVICE_ERROR"},
        )
    return QueryResponse(answer=answer)
