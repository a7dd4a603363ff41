# medapp/agent/nodes.py
import logging
from typing import Any, Dict

from medapp.agent.state import DischargeState
from medapp.schemas.models import Medication
from medapp.services.llm.extraction import llm_extract_text
from medapp.services.normalizer import Dialect, normalize_response
from medapp.services.scheduler import generate_reminders

logger = logging.getLogger(__name__)

def _audit(state: DischargeState, event: str, extra: Dict[str, Any] | None = None) -> Dict[str, Any]:
    audit = list(state.get("audit") or [])
    audit.append({"event": event, **(extra or {})})
    return {"audit": audit}

def generate_node(state: DischargeState) -> Dict[str, Any]:
    dialect = Dialect(state["dialect"])
    logger.info("Requesting %s extraction for run %s", dialect.value, state["run_id"])
    raw = llm_extract_text(state["discharge_summary"], dialect)
    return {"raw_response": raw, **_audit(state, "generate.done", {"chars": len(raw)})}

def normalize_node(state: DischargeState) -> Dict[str, Any]:
    meds = normalize_response(state.get("raw_response") or "", Dialect(state["dialect"]))
    return {
        "meds": [m.model_dump(mode="json") for m in meds],
        **_audit(state, "normalize.done", {"count": len(meds)}),
    }

def schedule_node(state: DischargeState) -> Dict[str, Any]:
    scheduled = []
    for d in state.get("meds") or []:
        med = Medication(**d)
        med.reminders = generate_reminders(med.frequency)
        logger.debug("Processed medication: %s", med)
        scheduled.append(med.model_dump(mode="json"))

    reminder_count = sum(len(m["reminders"]) for m in scheduled)
    return {"meds": scheduled, **_audit(state, "schedule.done", {"reminders": reminder_count})}
