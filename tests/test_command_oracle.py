from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import httpx
import pytest
from openai import APIConnectionError, AuthenticationError, RateLimitError

from core.command_oracle import OpenAICommandOracle, build_system_prompt, build_user_prompt
from core.errors import AgentErrorType, NetworkError, OracleError

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


class StubCompletions:
    def __init__(self, content: Optional[str] = None, error: Optional[Exception] = None) -> None:
        self.content = content
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class StubClient:
    def __init__(self, completions: StubCompletions) -> None:
        self.chat = SimpleNamespace(completions=completions)


def _oracle(completions: StubCompletions) -> OpenAICommandOracle:
    return OpenAICommandOracle(api_key="test-key", model="gpt-test", max_tokens=120, temperature=0.0, client=StubClient(completions))


def test_system_prompt_lists_projects_and_year() -> None:
    prompt = build_system_prompt("2025-03-10", ["Genel", "Web Sitesi"])
    assert "BUGÜNÜN TARİHİ: 2025-03-10 (2025 yılı)" in prompt
    assert "Mevcut projeler: Genel, Web Sitesi" in prompt
    assert '"commandType": "COMPLETE"' in prompt
    assert "(proje yok)" in build_system_prompt("2025-03-10", [])


def test_user_prompt_quotes_transcript() -> None:
    assert build_user_prompt("  yeni görev ekle ") == 'Ses kaydı metni: "yeni görev ekle"'


def test_interpret_returns_raw_content() -> None:
    completions = StubCompletions(content='{"commandType": "CREATE", "title": "Fix"}')
    oracle = _oracle(completions)

    raw = asyncio.run(oracle.interpret("yeni görev: fix", "2025-03-10", ["Genel"]))

    assert raw == '{"commandType": "CREATE", "title": "Fix"}'
    call = completions.calls[0]
    assert call["model"] == "gpt-test"
    assert call["max_tokens"] == 120
    assert call["temperature"] == 0.0
    assert call["response_format"] == {"type": "json_object"}
    assert call["messages"][0]["role"] == "system"
    assert call["messages"][1]["content"] == 'Ses kaydı metni: "yeni görev: fix"'


@pytest.mark.parametrize("content", [None, "", "   "])
def test_empty_content_is_oracle_error(content) -> None:
    oracle = _oracle(StubCompletions(content=content))
    with pytest.raises(OracleError) as excinfo:
        asyncio.run(oracle.interpret("x", "2025-03-10", ["Genel"]))
    assert excinfo.value.message == "AI servisi boş yanıt döndü"
    assert excinfo.value.recoverable is True


def test_missing_api_key_is_not_recoverable() -> None:
    oracle = OpenAICommandOracle(api_key=None)
    with pytest.raises(OracleError) as excinfo:
        asyncio.run(oracle.interpret("x", "2025-03-10", ["Genel"]))
    assert excinfo.value.recoverable is False


def test_connection_error_maps_to_network_error() -> None:
    oracle = _oracle(StubCompletions(error=APIConnectionError(request=_REQUEST)))
    with pytest.raises(NetworkError) as excinfo:
        asyncio.run(oracle.interpret("x", "2025-03-10", ["Genel"]))
    assert excinfo.value.to_agent_error().error_type is AgentErrorType.NETWORK_ERROR
    assert excinfo.value.recoverable is True


def test_rate_limit_error_is_recoverable() -> None:
    error = RateLimitError(
        "Rate limit reached",
        response=httpx.Response(429, request=_REQUEST),
        body={"code": "rate_limit_exceeded"},
    )
    oracle = _oracle(StubCompletions(error=error))
    with pytest.raises(OracleError) as excinfo:
        asyncio.run(oracle.interpret("x", "2025-03-10", ["Genel"]))
    assert excinfo.value.message == "Çok fazla istek - lütfen bekleyin"
    assert excinfo.value.recoverable is True
    assert excinfo.value.details == {"code": "rate_limit_exceeded", "status_code": 429}


def test_quota_error_is_not_recoverable() -> None:
    error = RateLimitError(
        "Quota exceeded",
        response=httpx.Response(429, request=_REQUEST),
        body={"code": "insufficient_quota"},
    )
    oracle = _oracle(StubCompletions(error=error))
    with pytest.raises(OracleError) as excinfo:
        asyncio.run(oracle.interpret("x", "2025-03-10", ["Genel"]))
    assert excinfo.value.message == "AI servisi kotası doldu"
    assert excinfo.value.recoverable is False


def test_authentication_error_is_not_recoverable() -> None:
    error = AuthenticationError("Unauthorized", response=httpx.Response(401, request=_REQUEST), body=None)
    oracle = _oracle(StubCompletions(error=error))
    with pytest.raises(OracleError) as excinfo:
        asyncio.run(oracle.interpret("x", "2025-03-10", ["Genel"]))
    assert excinfo.value.message == "AI servisi yapılandırma hatası"
    assert excinfo.value.recoverable is False
