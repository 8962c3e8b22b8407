from __future__ import annotations

import logging
import ssl
from types import SimpleNamespace

import httpx
import openai
import pytest

from adapters.ai_requests import OpenAIModelClient, RequestExecutor, classify_exception, is_gateway_content
from conftest import ScriptedModelClient
from core.config import AppSettings
from core.domain.models import ErrorClass
from core.errors import (
    ConfigurationError,
    GatewayError,
    RateLimitError,
    RequestError,
    RequestTimeoutError,
    SslError,
)

GATEWAY_PAGE = "<html><head><title>502 Bad Gateway</title></head><body>cloudflare</body></html>"


def _executor(client, sleep):
    return RequestExecutor(client, sleep=sleep)


def test_timeout_backoff_is_exponential(sleep):
    client = ScriptedModelClient(httpx.ReadTimeout("timed out"), httpx.ReadTimeout("timed out"), '{"ok": true}')
    executor = _executor(client, sleep)

    assert executor.execute("prompt") == {"ok": True}
    assert sleep.delays == [10.0, 20.0]
    assert executor.last_retry_state.attempt == 3
    assert executor.last_retry_state.error_class is ErrorClass.TIMEOUT


def test_timeout_exhaustion_raises_typed_error(sleep):
    client = ScriptedModelClient(httpx.ReadTimeout("timed out"))
    executor = _executor(client, sleep)

    with pytest.raises(RequestTimeoutError) as info:
        executor.execute("prompt", context_label="test:timeout")

    assert info.value.attempts == 3
    assert info.value.context_label == "test:timeout"
    assert info.value.error_class is ErrorClass.TIMEOUT
    assert sleep.delays == [10.0, 20.0]
    assert len(client.prompts) == 3


def test_sdk_timeout_is_classified_as_timeout():
    request = httpx.Request("POST", "https://api.example.test/v1/chat/completions")
    assert classify_exception(openai.APITimeoutError(request=request)) is ErrorClass.TIMEOUT


def test_gateway_page_in_successful_response_is_retried(sleep):
    client = ScriptedModelClient(GATEWAY_PAGE, '{"locations": []}')
    executor = _executor(client, sleep)

    assert executor.execute("prompt") == {"locations": []}
    assert sleep.delays == [5.0]


def test_gateway_exhaustion(sleep):
    client = ScriptedModelClient(GATEWAY_PAGE)
    executor = _executor(client, sleep)

    with pytest.raises(GatewayError) as info:
        executor.execute("prompt")

    assert info.value.attempts == 3
    assert "502 Bad Gateway" in str(info.value)
    assert sleep.delays == [5.0, 10.0]


def test_generic_error_with_gateway_text_is_reclassified(sleep):
    error = RuntimeError("<html><title>503 Service Unavailable</title></html>")
    client = ScriptedModelClient(error, '{"ok": 1}')
    executor = _executor(client, sleep)

    assert executor.execute("prompt") == {"ok": 1}
    assert sleep.delays == [5.0]


def test_ssl_error_is_retried(sleep):
    client = ScriptedModelClient(ssl.SSLError("bad record mac"), ssl.SSLError("bad record mac"), '{"ok": 1}')
    executor = _executor(client, sleep)

    assert executor.execute("prompt") == {"ok": 1}
    assert sleep.delays == [5.0, 10.0]


def test_ssl_exhaustion(sleep):
    client = ScriptedModelClient(ssl.SSLError("unexpected eof"))
    with pytest.raises(SslError):
        _executor(client, sleep).execute("prompt")
    assert sleep.delays == [5.0, 10.0]


def test_rate_limit_is_not_retried_locally(sleep):
    response = httpx.Response(429, request=httpx.Request("POST", "https://api.example.test/v1/chat/completions"))
    error = openai.RateLimitError("Too many requests", response=response, body=None)
    client = ScriptedModelClient(error)

    with pytest.raises(RateLimitError) as info:
        _executor(client, sleep).execute("prompt")

    assert info.value.attempts == 1
    assert sleep.delays == []


def test_generic_error_fails_fast(sleep):
    client = ScriptedModelClient(ValueError("boom"))

    with pytest.raises(RequestError) as info:
        _executor(client, sleep).execute("prompt")

    assert type(info.value) is RequestError
    assert info.value.error_class is ErrorClass.GENERIC
    assert isinstance(info.value.__cause__, ValueError)
    assert sleep.delays == []


def test_configuration_error_is_never_retried(sleep):
    client = ScriptedModelClient(ConfigurationError("missing key"))

    with pytest.raises(ConfigurationError):
        _executor(client, sleep).execute("prompt")

    assert len(client.prompts) == 1
    assert sleep.delays == []


def test_structured_response_is_returned_as_is(sleep):
    payload = {"locations": [{"name": "Stari Most"}]}
    client = ScriptedModelClient(payload)

    assert _executor(client, sleep).execute("prompt", schema={"type": "object"}) is payload


def test_text_response_is_repaired(sleep):
    client = ScriptedModelClient('```json\n{"name": "Jajce",}\n```')
    assert _executor(client, sleep).execute("prompt") == {"name": "Jajce"}


def test_one_warning_per_retry_and_error_on_exhaustion(sleep, caplog):
    caplog.set_level(logging.WARNING)
    client = ScriptedModelClient(httpx.ConnectTimeout("timed out"))

    with pytest.raises(RequestTimeoutError):
        _executor(client, sleep).execute("prompt", context_label="test:logs")

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(warnings) == 2
    assert len(errors) == 1
    assert "test:logs" in warnings[0].getMessage()
    assert "attempt='1/3'" in warnings[0].getMessage()


def test_is_gateway_content_requires_html_markers():
    assert is_gateway_content(GATEWAY_PAGE) is True
    assert is_gateway_content("502 Bad Gateway") is False
    assert is_gateway_content('{"name": "cloudflare"}') is False
    assert is_gateway_content(None) is False


class _StubCompletions:
    def __init__(self, content):
        self.content = content
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _stub_sdk(content):
    completions = _StubCompletions(content)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def test_model_client_requires_key_for_remote_endpoints():
    settings = AppSettings(_env_file=None, ai_api_key="", ai_base_url="https://api.openai.com/v1")
    with pytest.raises(ConfigurationError):
        OpenAIModelClient(settings)


def test_model_client_allows_local_endpoints_without_key():
    settings = AppSettings(_env_file=None, ai_api_key="", ai_base_url="http://localhost:11434/v1")
    assert OpenAIModelClient(settings).model == settings.ai_model


def test_model_client_schema_path_decodes_json():
    sdk, completions = _stub_sdk('{"locations": []}')
    client = OpenAIModelClient(AppSettings(_env_file=None, ai_model="gpt-4o-mini"), client=sdk)

    result = client.complete("prompt", {"title": "location_suggestions", "type": "object"})

    assert result == {"locations": []}
    assert completions.kwargs["response_format"]["type"] == "json_schema"
    assert completions.kwargs["response_format"]["json_schema"]["name"] == "location_suggestions"
    assert completions.kwargs["model"] == "gpt-4o-mini"


def test_model_client_text_path_returns_text():
    sdk, completions = _stub_sdk("Hello")
    client = OpenAIModelClient(AppSettings(_env_file=None), client=sdk)

    assert client.complete("prompt") == "Hello"
    assert "response_format" not in completions.kwargs
