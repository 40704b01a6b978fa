"""
Tests: reasoning client failure policy, with the OpenAI SDK faked out.

Run with:
    pytest carbo_audit/tests/test_llm_service.py -v
"""

from types import SimpleNamespace

import httpx
import pytest
from openai import APIConnectionError, APIStatusError

from carbo_audit.config import get_settings
from carbo_audit.exceptions import ConfigurationError, EmptyResponseError, UpstreamUnavailableError
from carbo_audit.models.enums import SourceKind
from carbo_audit.models.schemas import ExtractedText
from carbo_audit.services import llm_service
from carbo_audit.services.llm_service import ReasoningClient
from carbo_audit.services.prompt_builder import build_evaluation_request

_URL = "https://gateway.test/v1/chat/completions"


def _completion(content):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=None,
    )


def _connection_error():
    return APIConnectionError(request=httpx.Request("POST", _URL))


def _status_error(status):
    request = httpx.Request("POST", _URL)
    return APIStatusError("upstream failed", response=httpx.Response(status, request=request), body=None)


class _ScriptedOpenAI:
    """Replays outcomes in order; exceptions are raised, anything else returned."""

    def __init__(self, outcomes, **kwargs):
        self.kwargs = kwargs
        self.outcomes = list(outcomes)
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def request_payload(corpus):
    pdd = ExtractedText(content="Project Name: Luzon AWD Rice Project", source_kind=SourceKind.PDD)
    return build_evaluation_request(corpus, pdd)


@pytest.fixture
def scripted(monkeypatch):
    def install(*outcomes):
        holder = {}

        def factory(**kwargs):
            holder["client"] = _ScriptedOpenAI(outcomes, **kwargs)
            return holder["client"]

        monkeypatch.setattr(llm_service, "OpenAI", factory)
        return holder

    return install


class TestReasoningClient:
    def test_success_returns_content(self, scripted, request_payload):
        holder = scripted(_completion('{"issues": []}'))
        assert ReasoningClient().evaluate(request_payload) == '{"issues": []}'

        client = holder["client"]
        assert client.kwargs["max_retries"] == 0
        assert client.kwargs["timeout"] == 120.0
        call = client.calls[0]
        assert call["model"] == "google/gemini-2.5-flash"
        assert call["temperature"] == 0.1
        assert call["max_tokens"] == 8000
        assert [m["role"] for m in call["messages"]] == ["system", "user"]

    def test_status_error_not_retried(self, scripted, request_payload):
        holder = scripted(_status_error(503), _completion("unused"))
        with pytest.raises(UpstreamUnavailableError) as exc_info:
            ReasoningClient().evaluate(request_payload)
        assert exc_info.value.status_code == 503
        assert exc_info.value.public_message == "AI evaluation service is unavailable"
        assert len(holder["client"].calls) == 1

    def test_transport_error_retried_once(self, scripted, request_payload):
        holder = scripted(_connection_error(), _completion('{"ok": true}'))
        assert ReasoningClient().evaluate(request_payload) == '{"ok": true}'
        assert len(holder["client"].calls) == 2

    def test_transport_retries_exhausted(self, scripted, request_payload):
        holder = scripted(_connection_error(), _connection_error(), _completion("unused"))
        with pytest.raises(UpstreamUnavailableError):
            ReasoningClient().evaluate(request_payload)
        assert len(holder["client"].calls) == 2

    def test_retry_count_configurable(self, scripted, request_payload, monkeypatch):
        monkeypatch.setenv("LLM_MAX_NETWORK_RETRIES", "0")
        get_settings.cache_clear()
        holder = scripted(_connection_error(), _completion("unused"))
        with pytest.raises(UpstreamUnavailableError):
            ReasoningClient().evaluate(request_payload)
        assert len(holder["client"].calls) == 1

    @pytest.mark.parametrize("content", [None, "", "   \n"])
    def test_empty_content(self, scripted, request_payload, content):
        scripted(_completion(content))
        with pytest.raises(EmptyResponseError):
            ReasoningClient().evaluate(request_payload)

    def test_no_choices(self, scripted, request_payload):
        scripted(SimpleNamespace(choices=[], usage=None))
        with pytest.raises(EmptyResponseError):
            ReasoningClient().evaluate(request_payload)

    def test_missing_key(self, monkeypatch, request_payload):
        monkeypatch.setenv("LLM_API_KEY", "")
        get_settings.cache_clear()
        with pytest.raises(ConfigurationError):
            ReasoningClient().evaluate(request_payload)
