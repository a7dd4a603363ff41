import pytest
import requests

from medapp.core import llm_config
from medapp.services import llm_client
from medapp.services.llm_client import LLMServiceError, chat_text, ensure_llm_configured


class FakeResponse:
    def __init__(self, status_code, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = text

    def json(self):
        return self._payload


def _ok(content):
    return FakeResponse(200, {"choices": [{"message": {"role": "assistant", "content": content}}]})


@pytest.fixture
def posts(monkeypatch):
    """Queue of responses returned by requests.post, plus the recorded calls."""
    queue, calls = [], []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    monkeypatch.setattr(llm_client.requests, "post", fake_post)
    monkeypatch.setattr(llm_client.time, "sleep", lambda s: None)
    return queue, calls


def test_openai_chat_sends_role_tagged_messages(posts):
    queue, calls = posts
    queue.append(_ok("MEDICATION:\n- Name: A"))

    out = chat_text(system="sys prompt", user="user prompt", max_tokens=123)

    assert out == "MEDICATION:\n- Name: A"
    body = calls[0]["json"]
    assert body["messages"] == [
        {"role": "system", "content": "sys prompt"},
        {"role": "user", "content": "user prompt"},
    ]
    assert body["temperature"] == llm_config.LLM_TEMPERATURE
    assert body["max_tokens"] == 123
    assert calls[0]["headers"]["Authorization"] == "Bearer sk-test"


def test_rate_limit_is_retried_then_succeeds(posts, monkeypatch):
    monkeypatch.setattr(llm_config, "LLM_MAX_RETRIES", 2)
    queue, calls = posts
    queue.extend([FakeResponse(429, text="slow down"), requests.ConnectionError("reset"), _ok("done")])

    assert chat_text(system="s", user="u") == "done"
    assert len(calls) == 3


def test_rate_limit_exhausts_retries(posts, monkeypatch):
    monkeypatch.setattr(llm_config, "LLM_MAX_RETRIES", 1)
    queue, calls = posts
    queue.extend([FakeResponse(429), FakeResponse(429)])

    with pytest.raises(LLMServiceError) as exc:
        chat_text(system="s", user="u")
    assert exc.value.status_code == 429
    assert "rate limit" in exc.value.message
    assert len(calls) == 2


def test_client_errors_are_not_retried(posts, monkeypatch):
    monkeypatch.setattr(llm_config, "LLM_MAX_RETRIES", 3)
    queue, calls = posts
    queue.append(FakeResponse(401, text="bad key"))

    with pytest.raises(LLMServiceError) as exc:
        chat_text(system="s", user="u")
    assert exc.value.status_code == 401
    assert len(calls) == 1


def test_ollama_provider(posts, monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "ollama")
    queue, calls = posts
    queue.append(FakeResponse(200, {"message": {"content": "[]"}}))

    assert chat_text(system="s", user="u") == "[]"
    assert calls[0]["url"].endswith("/chat")
    assert calls[0]["json"]["stream"] is False


@pytest.mark.parametrize("key", ["", "your_openai_api_key_here"])
def test_missing_openai_key_is_not_configured(monkeypatch, key):
    monkeypatch.setenv("OPENAI_API_KEY", key)
    with pytest.raises(LLMServiceError) as exc:
        ensure_llm_configured()
    assert exc.value.configured is False
    assert exc.value.retryable is False


def test_hf_requires_token(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "hf")
    monkeypatch.delenv("HF_TOKEN", raising=False)
    with pytest.raises(LLMServiceError):
        ensure_llm_configured()


def test_unknown_provider(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "carrier-pigeon")
    with pytest.raises(LLMServiceError):
        ensure_llm_configured()
