# medapp/services/llm/chat.py
import logging
from typing import List

from medapp.core.llm_config import LLM_MAX_TOKENS_CHAT
from medapp.schemas.models import Medication
from medapp.services.llm_client import chat_text
from medapp.services.llm.prompts import CHAT_SYSTEM_PROMPT, prescription_question_prompt

logger = logging.getLogger(__name__)

NO_MEDICATIONS_ANSWER = (
    "I don't have any current medications on file for you, so I can't answer that. "
    "Please ask your healthcare provider."
)

def answer_prescription_question(question: str, meds: List[Medication]) -> str:
    if not meds:
        return NO_MEDICATIONS_ANSWER

    logger.info("Answering prescription question over %d medications", len(meds))
    answer = chat_text(
        system=CHAT_SYSTEM_PROMPT,
        user=prescription_question_prompt(question, meds),
        max_tokens=LLM_MAX_TOKENS_CHAT,
    )
    return answer.strip()
