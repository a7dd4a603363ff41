# medapp/services/llm/extraction.py
import logging

from medapp.core.llm_config import LLM_MAX_TOKENS_EXTRACT
from medapp.services.llm_client import chat_text
from medapp.services.llm.prompts import (
    BULLET_SYSTEM_PROMPT,
    JSON_SYSTEM_PROMPT,
    bullet_extraction_prompt,
    json_extraction_prompt,
)
from medapp.services.normalizer import Dialect

logger = logging.getLogger(__name__)

def llm_extract_text(summary: str, dialect: Dialect) -> str:
    """Raw model output for the prompt variant matching `dialect`."""
    if Dialect(dialect) is Dialect.BULLET:
        system, user = BULLET_SYSTEM_PROMPT, bullet_extraction_prompt(summary)
    else:
        system, user = JSON_SYSTEM_PROMPT, json_extraction_prompt(summary)

    raw = chat_text(system=system, user=user, max_tokens=LLM_MAX_TOKENS_EXTRACT)
    logger.debug("Received model response (%s): %s", Dialect(dialect).value, raw)
    return raw.strip()
