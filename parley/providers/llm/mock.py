"""Scripted model gateway for tests and local development."""

from typing import Any

from parley.providers.llm.base import Completion, ModelGateway


class ScriptedModelGateway(ModelGateway):
    """Gateway that replays queued outcomes.

    Each call pops the next queued item: a string becomes the completion
    text, an exception is raised. When the queue is empty the default
    response is returned. Token counts are approximated at four characters
    per token unless fixed counts are given.
    """

    def __init__(
        self,
        default_response: str = "Mock response",
        *,
        tokens_in: int | None = None,
        tokens_out: int | None = None,
    ):
        self._default_response = default_response
        self._queue: list[str | Exception] = []
        self._tokens_in = tokens_in
        self._tokens_out = tokens_out
        self._call_history: list[dict[str, Any]] = []

    @property
    def provider_name(self) -> str:
        return "mock"

    @property
    def call_history(self) -> list[dict[str, Any]]:
        """Return history of calls for testing assertions."""
        return self._call_history

    @property
    def call_count(self) -> int:
        return len(self._call_history)

    def clear_history(self) -> None:
        self._call_history.clear()

    def queue(self, *outcomes: str | Exception) -> None:
        """Append outcomes to be returned or raised in order."""
        self._queue.extend(outcomes)

    async def complete(
        self,
        prompt: str,
        model_id: str,
        *,
        system: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> Completion:
        self._call_history.append({
            "prompt": prompt,
            "model": model_id,
            "system": system,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })

        outcome: str | Exception = self._queue.pop(0) if self._queue else self._default_response
        if isinstance(outcome, Exception):
            raise outcome

        prompt_chars = len(prompt) + len(system or "")
        return Completion(
            text=outcome,
            tokens_in=self._tokens_in if self._tokens_in is not None else prompt_chars // 4,
            tokens_out=self._tokens_out if self._tokens_out is not None else len(outcome) // 4,
            model=model_id,
        )
