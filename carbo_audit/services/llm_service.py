"""
LLM Service — client for the external reasoning service.

Any OpenAI-compatible chat-completions endpoint works; the gateway URL,
model and credential come from settings. Provides:
  - ReasoningClient.evaluate(request) → raw reply text

Failure policy:
  - non-success status            → UpstreamUnavailableError (never retried)
  - connection error / timeout    → retried up to llm_max_network_retries,
                                    then UpstreamUnavailableError
  - success with no content       → EmptyResponseError
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from openai import APIConnectionError, APIStatusError, OpenAI, OpenAIError

from carbo_audit.config import Settings, get_settings
from carbo_audit.exceptions import ConfigurationError, EmptyResponseError, UpstreamUnavailableError
from carbo_audit.models.schemas import EvaluationRequest

logger = logging.getLogger(__name__)


class ReasoningClient:
    """Single synchronous call per evaluation, low temperature, bounded output."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._client: Optional[OpenAI] = None

    def _get_client(self) -> OpenAI:
        if self._client is not None:
            return self._client
        if not self.settings.llm_api_key:
            raise ConfigurationError("LLM_API_KEY is not configured")
        self._client = OpenAI(
            api_key=self.settings.llm_api_key,
            base_url=self.settings.llm_base_url,
            timeout=self.settings.llm_timeout_seconds,
            max_retries=0,
        )
        logger.info(f"Initialized reasoning client: {self.settings.llm_model} @ {self.settings.llm_base_url}")
        return self._client

    def evaluate(self, request: EvaluationRequest) -> str:
        client = self._get_client()
        attempts = self.settings.llm_max_network_retries + 1
        messages = request.messages()

        logger.info(
            f"[LLM] Calling {self.settings.llm_model} "
            f"({sum(len(m['content']) for m in messages)} prompt chars)"
        )

        for attempt in range(1, attempts + 1):
            t0 = time.perf_counter()
            try:
                completion = client.chat.completions.create(
                    model=self.settings.llm_model,
                    messages=messages,
                    temperature=self.settings.llm_temperature,
                    max_tokens=self.settings.llm_max_tokens,
                )
            except APIConnectionError as exc:
                logger.warning(
                    f"[LLM] Transport failure on attempt {attempt}/{attempts}: {exc}. "
                    f"{'Retrying…' if attempt < attempts else 'No retries left.'}"
                )
                if attempt < attempts:
                    continue
                raise UpstreamUnavailableError(f"Reasoning service unreachable: {exc}") from exc
            except APIStatusError as exc:
                logger.error(f"[LLM] Reasoning service returned {exc.status_code}: {exc.message}")
                raise UpstreamUnavailableError(
                    f"Reasoning service call failed [{exc.status_code}]",
                    status_code=exc.status_code,
                ) from exc
            except OpenAIError as exc:
                logger.error(f"[LLM] Reasoning service call failed: {exc}")
                raise UpstreamUnavailableError(f"Reasoning service call failed: {exc}") from exc

            elapsed = time.perf_counter() - t0
            content = _first_message_content(completion)
            usage = getattr(completion, "usage", None)
            logger.info(
                f"[LLM] Response received in {elapsed:.2f}s | "
                f"{len(content or '')} chars | tokens={usage}"
            )
            if not content or not content.strip():
                raise EmptyResponseError()
            return content

        # attempts is always >= 1, the loop either returns or raises
        raise UpstreamUnavailableError("Reasoning service unreachable")


def _first_message_content(completion) -> str:
    choices = getattr(completion, "choices", None) or []
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    return getattr(message, "content", None) or ""
