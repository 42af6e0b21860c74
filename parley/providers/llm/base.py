"""Model gateway contract.

The completion service is an opaque capability: a prompt and a model id in,
text plus token counts out. Implementations raise classified ParleyErrors.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field


class Completion(BaseModel):
    """Result of one model call."""

    text: str = Field(..., description="Generated text")
    tokens_in: int = Field(..., ge=0, description="Input tokens billed")
    tokens_out: int = Field(..., ge=0, description="Output tokens billed")
    model: str = Field(..., description="Model that served the call")
    latency_ms: float = Field(default=0.0, ge=0.0, description="Wall time of the call")

    @property
    def total_tokens(self) -> int:
        return self.tokens_in + self.tokens_out


class ModelGateway(ABC):
    """Abstract completion service."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        model_id: str,
        *,
        system: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> Completion:
        """Run one completion.

        Raises:
            ParleyError: AuthError, QuotaError, RateLimitError, NetworkError
                or ProviderError depending on the failure
        """
        pass

    async def close(self) -> None:
        """Release network resources. No-op by default."""
        return None
