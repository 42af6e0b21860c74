"""Anthropic Messages API gateway over httpx."""

import time
from typing import Any

import httpx

from parley.errors import InvalidResponseError, classify_error, classify_http_status
from parley.observability.logging import get_logger
from parley.observability.metrics import LLM_TOKENS, MODEL_CALLS, MODEL_LATENCY
from parley.providers.llm.base import Completion, ModelGateway

logger = get_logger(__name__)


class AnthropicGateway(ModelGateway):
    """Model gateway calling POST /v1/messages.

    Status handling: 401/403 are auth failures, 429 is throttling (the
    retry-after header is carried on the error), 402 and credit/quota
    payloads are quota failures, 5xx and 529 (overloaded) are provider errors.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.anthropic.com",
        api_version: str = "2023-06-01",
        timeout: float = 120.0,
        client: httpx.AsyncClient | None = None,
    ):
        if not api_key:
            raise ValueError("Anthropic API key is not configured")
        self._api_key = api_key
        self._api_version = api_version
        self._url = f"{base_url.rstrip('/')}/v1/messages"
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def provider_name(self) -> str:
        return "anthropic"

    async def complete(
        self,
        prompt: str,
        model_id: str,
        *,
        system: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> Completion:
        headers = {
            "content-type": "application/json",
            "x-api-key": self._api_key,
            "anthropic-version": self._api_version,
        }
        payload: dict[str, Any] = {
            "model": model_id,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            payload["system"] = system

        logger.debug(
            "anthropic_request",
            model=model_id,
            prompt_chars=len(prompt),
            max_tokens=max_tokens,
        )

        start = time.perf_counter()
        try:
            response = await self._client.post(self._url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            MODEL_CALLS.labels(model=model_id, outcome="network_error").inc()
            raise classify_error(e) from e
        latency = time.perf_counter() - start
        MODEL_LATENCY.labels(model=model_id).observe(latency)

        if response.status_code != 200:
            error = classify_http_status(response.status_code, response.text, response.headers)
            MODEL_CALLS.labels(model=model_id, outcome=error.code.lower()).inc()
            logger.warning(
                "anthropic_error",
                model=model_id,
                status_code=response.status_code,
                error_code=error.code,
            )
            raise error

        data = response.json()
        text = "".join(
            block.get("text", "")
            for block in data.get("content", [])
            if block.get("type") == "text"
        )
        usage = data.get("usage")
        if not isinstance(usage, dict):
            raise InvalidResponseError("completion", "response carried no usage block")

        tokens_in = int(usage.get("input_tokens", 0))
        tokens_out = int(usage.get("output_tokens", 0))
        MODEL_CALLS.labels(model=model_id, outcome="ok").inc()
        LLM_TOKENS.labels(model=model_id, direction="input").inc(tokens_in)
        LLM_TOKENS.labels(model=model_id, direction="output").inc(tokens_out)

        logger.debug(
            "anthropic_success",
            model=model_id,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            latency_ms=round(latency * 1000, 1),
        )

        return Completion(
            text=text,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            model=data.get("model", model_id),
            latency_ms=latency * 1000,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
