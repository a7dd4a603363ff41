# medapp/agent/graph.py
import logging
import uuid
from typing import List, Tuple

from langgraph.graph import START, END, StateGraph
from langgraph.checkpoint.sqlite import SqliteSaver

from medapp.agent.state import DischargeState
from medapp.agent.nodes import generate_node, normalize_node, schedule_node
from medapp.db.db_config import CHECKPOINT_DB_PATH, get_sqlite_connection
from medapp.schemas.models import Medication
from medapp.services.normalizer import Dialect, validate_discharge_summary

logger = logging.getLogger(__name__)

builder = StateGraph(DischargeState)

builder.add_node("generate", generate_node)
builder.add_node("normalize", normalize_node)
builder.add_node("schedule", schedule_node)

builder.add_edge(START, "generate")
builder.add_edge("generate", "normalize")
builder.add_edge("normalize", "schedule")
builder.add_edge("schedule", END)

conn = get_sqlite_connection(CHECKPOINT_DB_PATH)
memory = SqliteSaver(conn)

discharge_graph = builder.compile(checkpointer=memory)

def _config(run_id: str):
    return {"configurable": {"thread_id": run_id}}

def run_discharge_extraction(summary: str, patient_id: str, dialect: Dialect) -> Tuple[str, List[Medication]]:
    """
    Validate -> generate -> normalize -> schedule.
    Validation happens before the graph so a bad summary never reaches the model.
    Typed extraction errors propagate unchanged.
    """
    validate_discharge_summary(summary)
    dialect = Dialect(dialect)
    run_id = "run_" + uuid.uuid4().hex
    logger.info("Discharge run %s: patient=%s dialect=%s chars=%d", run_id, patient_id, dialect.value, len(summary))

    result = discharge_graph.invoke(
        {
            "run_id": run_id,
            "patient_id": patient_id,
            "dialect": dialect.value,
            "discharge_summary": summary,
            "audit": [],
        },
        config=_config(run_id),
    )
    meds = [Medication(**d) for d in result.get("meds") or []]
    return run_id, meds

def run_audit(run_id: str) -> List[dict]:
    snap = discharge_graph.get_state(_config(run_id))
    return (snap.values or {}).get("audit", [])
