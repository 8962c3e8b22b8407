"""Adaptador para el servicio de modelo (SDK OpenAI) con reintentos tipados.

Responsabilidad:
- `OpenAIModelClient`: una llamada al modelo, sin políticas propias. Los 429
  y 5xx limpios los reintenta el propio SDK (`max_retries`).
- `RequestExecutor`: clasifica lo que el SDK no resuelve (páginas HTML de
  gateway de un CDN, timeouts, errores TLS), reintenta con backoff
  exponencial bloqueante y parsea la respuesta con `JsonRepairer`.

Agotar los reintentos lanza una subclase de `RequestError` con la
clasificación, para que el caller registre y salte el item sin abortar el lote.
"""

from __future__ import annotations

import json
import re
import ssl
import time
from dataclasses import dataclass
from typing import Any, Callable

import httpx
import openai
from openai import OpenAI

from adapters.http_client import describe_html_error
from core.config import AppSettings
from core.domain.models import ErrorClass, RetryState
from core.errors import (
    ConfigurationError,
    GatewayError,
    RateLimitError,
    RequestError,
    RequestTimeoutError,
    SslError,
)
from core.interfaces.model_service import ModelClient
from core.interfaces.reporter import LoggingReporter, Reporter
from core.services.json_repair import JsonRepairer

GATEWAY_ERROR_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"502\s*Bad\s*Gateway", re.IGNORECASE),
    re.compile(r"503\s*Service\s*(Temporarily\s*)?Unavailable", re.IGNORECASE),
    re.compile(r"504\s*Gateway\s*Time[- ]?out", re.IGNORECASE),
    re.compile(r"<title>[^<]*(?:502|503|504)[^<]*</title>", re.IGNORECASE),
    re.compile(r"cloudflare", re.IGNORECASE),
)

_SSL_MARKERS = ("ssl", "tls", "unexpected eof", "connection reset", "eof occurred")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int
    base_delay: float = 0.0

    def delay_for(self, attempt: int) -> float:
        """Delay after failed attempt `attempt` (1-based): base, 2x base, 4x base..."""

        return self.base_delay * (2 ** (attempt - 1))


RETRY_POLICIES: dict[ErrorClass, RetryPolicy] = {
    ErrorClass.GATEWAY: RetryPolicy(max_attempts=3, base_delay=5.0),
    ErrorClass.TIMEOUT: RetryPolicy(max_attempts=3, base_delay=10.0),
    ErrorClass.SSL: RetryPolicy(max_attempts=3, base_delay=5.0),
    # El SDK ya reintentó: no hay reintento local.
    ErrorClass.RATE_LIMIT: RetryPolicy(max_attempts=1),
    ErrorClass.GENERIC: RetryPolicy(max_attempts=1),
}

_TYPED_ERRORS: dict[ErrorClass, type[RequestError]] = {
    ErrorClass.GATEWAY: GatewayError,
    ErrorClass.TIMEOUT: RequestTimeoutError,
    ErrorClass.SSL: SslError,
    ErrorClass.RATE_LIMIT: RateLimitError,
    ErrorClass.GENERIC: RequestError,
}

_ERROR_LABELS: dict[ErrorClass, str] = {
    ErrorClass.GATEWAY: "Gateway error",
    ErrorClass.TIMEOUT: "Network timeout",
    ErrorClass.SSL: "SSL error",
    ErrorClass.RATE_LIMIT: "Rate limit exceeded",
    ErrorClass.GENERIC: "Request failed",
}


def is_gateway_content(content: object) -> bool:
    """CDN-level HTML error page (502/503/504, Cloudflare) in a response or message."""

    if not isinstance(content, str) or not content:
        return False
    if "<" not in content or ">" not in content:
        return False
    return any(pattern.search(content) for pattern in GATEWAY_ERROR_PATTERNS)


def gateway_error_type(content: str) -> str:
    if re.search(r"502", content):
        return "502 Bad Gateway"
    if re.search(r"503", content):
        return "503 Service Unavailable"
    if re.search(r"504", content):
        return "504 Gateway Timeout"
    return "Gateway Error"


def _causes(exc: BaseException) -> list[BaseException]:
    chain: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain


def classify_exception(exc: BaseException) -> ErrorClass:
    """Mapea una excepción del SDK/transporte a la taxonomía del pipeline."""

    if isinstance(exc, ConfigurationError):
        return ErrorClass.CONFIGURATION
    if isinstance(exc, RequestError):
        return exc.error_class
    if isinstance(exc, openai.RateLimitError):
        return ErrorClass.RATE_LIMIT

    chain = _causes(exc)
    if any(isinstance(e, (openai.APITimeoutError, httpx.TimeoutException, TimeoutError)) for e in chain):
        return ErrorClass.TIMEOUT
    if any(isinstance(e, ssl.SSLError) for e in chain):
        return ErrorClass.SSL
    if isinstance(exc, (openai.APIConnectionError, httpx.TransportError, ConnectionError)):
        text = " ".join(str(e) for e in chain).lower()
        if any(marker in text for marker in _SSL_MARKERS):
            return ErrorClass.SSL
    return ErrorClass.GENERIC


def _is_local_base_url(url: str) -> bool:
    url_l = (url or "").strip().lower()
    return url_l.startswith(("http://localhost", "http://127.0.0.1", "http://0.0.0.0"))


class OpenAIModelClient:
    """`ModelClient` sobre el SDK oficial (cualquier endpoint compatible OpenAI)."""

    def __init__(self, settings: AppSettings | None = None, *, client: OpenAI | None = None) -> None:
        settings = settings or AppSettings()
        if client is None:
            api_key = (settings.ai_api_key or "").strip()
            if not api_key:
                # Providers locales (Ollama, LM Studio) aceptan cualquier key.
                if not _is_local_base_url(settings.ai_base_url):
                    raise ConfigurationError("Model service API key not configured (POI_INGEST_AI_API_KEY).")
                api_key = "local"
            client = OpenAI(
                api_key=api_key,
                base_url=settings.ai_base_url,
                timeout=settings.ai_timeout_seconds,
                max_retries=settings.ai_max_retries,
            )
        self._client = client
        self.model = settings.ai_model

    def complete(self, prompt: str, schema: dict[str, Any] | None = None) -> str | dict[str, Any]:
        kwargs: dict[str, Any] = {}
        if schema:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": str(schema.get("title") or "response"), "schema": schema},
            }

        response = self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0.2,
            **kwargs,
        )
        content = response.choices[0].message.content or ""
        if schema:
            try:
                data = json.loads(content)
            except json.JSONDecodeError:
                return content
            if isinstance(data, dict):
                return data
        return content


class RequestExecutor:
    """Ejecuta prompts con la política de reintentos por clase de error.

    `sleep` se inyecta para poder verificar los delays sin esperar de verdad.
    """

    def __init__(
        self,
        client: ModelClient,
        *,
        repairer: JsonRepairer | None = None,
        sleep: Callable[[float], None] = time.sleep,
        policies: dict[ErrorClass, RetryPolicy] | None = None,
        reporter: Reporter | None = None,
    ) -> None:
        self._client = client
        self._reporter = reporter or LoggingReporter("RequestExecutor")
        self._repairer = repairer or JsonRepairer(reporter=self._reporter)
        self._sleep = sleep
        self._policies = {**RETRY_POLICIES, **(policies or {})}
        self.last_retry_state: RetryState | None = None

    def execute(
        self,
        prompt: str,
        schema: dict[str, Any] | None = None,
        context_label: str = "RequestExecutor",
    ) -> dict[str, Any] | list[Any]:
        """Structured result: the service's own object, or repaired text."""

        response = self._call(prompt, schema, context_label)
        if isinstance(response, (dict, list)):
            return response
        return self._repairer.repair(response)

    def _call(self, prompt: str, schema: dict[str, Any] | None, context_label: str) -> Any:
        state = RetryState()
        self.last_retry_state = state

        while True:
            state.attempt += 1
            try:
                response = self._client.complete(prompt, schema)
                self._raise_if_gateway_page(response)
                return response
            except ConfigurationError:
                raise
            except Exception as exc:
                error_class = classify_exception(exc)
                if error_class is ErrorClass.GENERIC and is_gateway_content(str(exc)):
                    error_class = ErrorClass.GATEWAY
                state.error_class = error_class

                policy = self._policies[error_class]
                message = self._short_message(exc)
                if state.attempt < policy.max_attempts:
                    delay = policy.delay_for(state.attempt)
                    state.record_delay(delay)
                    self._reporter.warning(
                        f"{_ERROR_LABELS[error_class]}, retrying",
                        context=context_label,
                        error_class=error_class.value,
                        attempt=f"{state.attempt}/{policy.max_attempts}",
                        delay_seconds=delay,
                        error=message,
                    )
                    self._sleep(delay)
                    continue

                self._reporter.error(
                    f"{_ERROR_LABELS[error_class]} after {state.attempt} attempt(s)",
                    context=context_label,
                    error_class=error_class.value,
                    error=message,
                )
                raise _TYPED_ERRORS[error_class](
                    f"{_ERROR_LABELS[error_class]}: {message}",
                    attempts=state.attempt,
                    context_label=context_label,
                ) from exc

    @staticmethod
    def _raise_if_gateway_page(response: object) -> None:
        if isinstance(response, str) and is_gateway_content(response):
            title = describe_html_error(response)
            detail = gateway_error_type(response)
            raise GatewayError(f"{detail} ({title})" if title else detail)

    @staticmethod
    def _short_message(exc: BaseException) -> str:
        text = str(exc) or type(exc).__name__
        if is_gateway_content(text):
            title = describe_html_error(text)
            return f"{gateway_error_type(text)} ({title})" if title else gateway_error_type(text)
        return text[:300]


def build_request_executor(
    settings: AppSettings | None = None,
    *,
    reporter: Reporter | None = None,
) -> RequestExecutor:
    """Executor listo para usar contra el endpoint configurado."""

    return RequestExecutor(OpenAIModelClient(settings), reporter=reporter)
