# medapp/services/llm_client.py
import logging
import os
import time
from typing import Any, Dict, List, Optional

import requests
from huggingface_hub import InferenceClient, InferenceTimeoutError
from huggingface_hub.errors import HfHubHTTPError

from medapp.core import llm_config

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "AI service rate limit exceeded or insufficient credits"
RATE_LIMIT_DETAILS = (
    "The API key has hit the rate limit or does not have sufficient credits. "
    "Please check the account billing or wait a moment before trying again."
)

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}

class LLMServiceError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None, details: str = "", configured: bool = True):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or message
        self.configured = configured

    @property
    def retryable(self) -> bool:
        return self.configured and (self.status_code is None or self.status_code in _RETRYABLE_STATUS)

def _provider() -> str:
    # read at runtime so tests / restarts pick up env changes
    return (os.getenv("LLM_PROVIDER") or llm_config.LLM_PROVIDER).strip().lower()

def _openai_key() -> str:
    return os.getenv("OPENAI_API_KEY", "").strip()

def ensure_llm_configured() -> None:
    provider = _provider()
    if provider == "openai":
        key = _openai_key()
        if not key or key == llm_config.OPENAI_KEY_PLACEHOLDER:
            raise LLMServiceError(
                "AI service is not properly configured",
                details="Set OPENAI_API_KEY in config.env and restart.",
                configured=False,
            )
    elif provider == "hf":
        if not os.getenv("HF_TOKEN", "").strip():
            raise LLMServiceError(
                "AI service is not properly configured",
                details="HF_TOKEN is missing. Set it in config.env and restart.",
                configured=False,
            )
    elif provider != "ollama":
        raise LLMServiceError(f"Unknown LLM_PROVIDER '{provider}'", configured=False)

def _http_error(name: str, status: int, body: str) -> LLMServiceError:
    if status == 429:
        return LLMServiceError(RATE_LIMIT_MESSAGE, status_code=status, details=RATE_LIMIT_DETAILS)
    return LLMServiceError(
        "Failed to get response from AI service. Please try again later.",
        status_code=status,
        details=f"{name} {status}: {body[:500]}",
    )

def _post(name: str, url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout_s: int) -> Dict[str, Any]:
    try:
        r = requests.post(url, json=payload, headers=headers, timeout=timeout_s)
    except (requests.ConnectionError, requests.Timeout) as e:
        raise LLMServiceError(f"{name} unreachable", details=str(e)) from e
    if r.status_code >= 400:
        raise _http_error(name, r.status_code, r.text)
    return r.json()

def _openai_chat(messages: List[Dict[str, str]], temperature: float, max_tokens: int, timeout_s: int) -> str:
    data = _post(
        "OpenAI",
        llm_config.OPENAI_API_URL,
        {
            "model": os.getenv("OPENAI_MODEL", llm_config.OPENAI_MODEL),
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        },
        {"Content-Type": "application/json", "Authorization": f"Bearer {_openai_key()}"},
        timeout_s,
    )
    choices = data.get("choices") or []
    if not choices:
        raise LLMServiceError("Unexpected AI service response", details=str(data)[:500])
    return (choices[0].get("message") or {}).get("content") or ""

def _ollama_chat(messages: List[Dict[str, str]], temperature: float, max_tokens: int, timeout_s: int) -> str:
    data = _post(
        "Ollama",
        f"{llm_config.OLLAMA_BASE_URL}/chat",
        {
            "model": os.getenv("OLLAMA_MODEL", llm_config.OLLAMA_MODEL),
            "messages": messages,
            "stream": False,
            "options": {"temperature": temperature, "num_predict": max_tokens},
        },
        {"Content-Type": "application/json"},
        timeout_s,
    )
    return (data.get("message") or {}).get("content", "") or ""

def _hf_chat(messages: List[Dict[str, str]], temperature: float, max_tokens: int, timeout_s: int) -> str:
    client = InferenceClient(
        provider=os.getenv("HF_PROVIDER", "auto").strip() or "auto",
        api_key=os.getenv("HF_TOKEN", "").strip(),
        timeout=float(timeout_s),
    )
    try:
        out = client.chat_completion(
            model=os.getenv("HF_MODEL", llm_config.HF_MODEL),
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
    except InferenceTimeoutError as e:
        raise LLMServiceError("HF inference timed out", details=str(e)) from e
    except HfHubHTTPError as e:
        status = e.response.status_code if e.response is not None else None
        if status is not None:
            raise _http_error("HF", status, str(e)) from e
        raise LLMServiceError("HF inference failed", details=str(e)) from e
    return out.choices[0].message.content or ""

_PROVIDERS = {
    "openai": _openai_chat,
    "ollama": _ollama_chat,
    "hf": _hf_chat,
}

def chat_text(
    *,
    system: str,
    user: str,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    timeout_s: Optional[int] = None,
) -> str:
    """
    Single text completion for a system + user prompt.
    Transient failures (429/5xx/connection/timeout) are retried with linear backoff.
    """
    ensure_llm_configured()
    provider = _provider()
    call = _PROVIDERS[provider]

    messages = [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]
    temperature = temperature if temperature is not None else llm_config.LLM_TEMPERATURE
    max_tokens = max_tokens if max_tokens is not None else llm_config.LLM_MAX_TOKENS_EXTRACT
    timeout_s = timeout_s or llm_config.LLM_TIMEOUT_S

    attempt = 0
    while True:
        try:
            return call(messages, temperature, max_tokens, timeout_s)
        except LLMServiceError as e:
            if not e.retryable or attempt >= llm_config.LLM_MAX_RETRIES:
                logger.error("LLM call failed (provider=%s, status=%s): %s", provider, e.status_code, e.details)
                raise
            attempt += 1
            logger.warning("LLM call failed (status=%s), retry %d/%d", e.status_code, attempt, llm_config.LLM_MAX_RETRIES)
            time.sleep(llm_config.LLM_RETRY_BACKOFF_S * attempt)
