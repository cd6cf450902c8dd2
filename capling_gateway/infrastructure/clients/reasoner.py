"""Reasoning service HTTP client (OpenAI-compatible chat completions)"""

import logging
from typing import Optional

import httpx

from capling_gateway.config import settings
from capling_gateway.domain.classification import ReasonerFailure, ReasonerResult, ReasonerSuccess
from capling_gateway.domain.exceptions import OperationTimeoutError
from capling_gateway.domain.ports import Reasoner
from capling_gateway.utils.retry import with_timeout

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful financial advisor. Always respond with valid JSON only."


class OpenAIReasoner(Reasoner):
    """Client for an external chat-completions endpoint"""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.reasoner_api_base).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.reasoner_api_key
        self.model = model or settings.reasoner_model
        self.transport = transport

    async def complete(
        self,
        prompt: str,
        timeout_seconds: float,
        system_prompt: Optional[str] = None,
    ) -> ReasonerResult:
        """
        Send one completion request, bounded by timeout_seconds overall.

        Never raises: timeouts, HTTP errors, transport errors and malformed
        bodies come back as ReasonerFailure.
        """
        if not self.api_key:
            return ReasonerFailure("not_configured", "Reasoner API key not configured")

        try:
            return await with_timeout(
                self._request(prompt, timeout_seconds, system_prompt or DEFAULT_SYSTEM_PROMPT),
                timeout_seconds,
                f"Reasoner call timed out after {timeout_seconds}s",
            )
        except OperationTimeoutError as e:
            return ReasonerFailure("timeout", str(e))

    async def _request(self, prompt: str, timeout_seconds: float, system_prompt: str) -> ReasonerResult:
        async with httpx.AsyncClient(timeout=timeout_seconds, transport=self.transport) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "model": self.model,
                        "messages": [
                            {"role": "system", "content": system_prompt},
                            {"role": "user", "content": prompt},
                        ],
                        "temperature": settings.reasoner_temperature,
                        "max_tokens": settings.reasoner_max_tokens,
                    },
                )
                response.raise_for_status()
                data = response.json()
                text = data["choices"][0]["message"]["content"]

            except httpx.TimeoutException:
                return ReasonerFailure("timeout", f"Reasoner API timeout after {timeout_seconds}s")
            except httpx.HTTPStatusError as e:
                return ReasonerFailure("http_status", f"Reasoner API error: {e.response.status_code}")
            except httpx.RequestError as e:
                return ReasonerFailure("network", f"Reasoner API unreachable: {e}")
            except (KeyError, IndexError, TypeError, ValueError) as e:
                return ReasonerFailure("invalid_response", f"Invalid response from reasoner: {e}")

        if not isinstance(text, str):
            return ReasonerFailure("invalid_response", "Completion content is not text")
        return ReasonerSuccess(text)
