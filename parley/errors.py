"""Error taxonomy for the interview, synthesis and billing core.

Every failure that crosses a component boundary is a ParleyError carrying:
- code: stable internal identifier (for logs, metrics, persisted job state)
- message: internal description
- user_message: human-readable text suitable for direct display
- retryable: whether the shared RetryPolicy may try the call again; false
  for anything classify_error could not place, such as programming errors

classify_error() maps arbitrary exceptions (httpx transport failures, HTTP
status codes, redis errors) into this taxonomy.
"""

from __future__ import annotations

from typing import Any

import httpx
import redis.exceptions


class ParleyError(Exception):
    """Base exception for all classified errors."""

    code: str = "UNKNOWN_ERROR"
    retryable: bool = False
    default_user_message: str = (
        "An unexpected error occurred. Please try again."
    )

    def __init__(
        self,
        message: str,
        *,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.user_message = user_message or self.default_user_message
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Serializable form stored on failed jobs."""
        return {
            "code": self.code,
            "message": self.message,
            "user_message": self.user_message,
            "retryable": self.retryable,
            "details": self.details,
        }


# ============================================================================
# Model gateway errors
# ============================================================================


class AuthError(ParleyError):
    """Model gateway credential failure."""

    code = "API_AUTH_ERROR"
    retryable = False
    default_user_message = (
        "API authentication error. Please verify the model provider key is "
        "configured correctly."
    )


class QuotaError(ParleyError):
    """Upstream provider quota or credit exhausted."""

    code = "API_QUOTA_EXCEEDED"
    retryable = False
    default_user_message = (
        "Unable to complete the request due to insufficient API credits. "
        "Please contact your administrator."
    )


class RateLimitError(ParleyError):
    """Upstream throttling, optionally with a retry-after hint in seconds."""

    code = "API_RATE_LIMIT"
    retryable = True

    def __init__(
        self,
        message: str,
        *,
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        if retry_after:
            minutes = max(1, int(-(-retry_after // 60)))
            user_message = f"Rate limit reached. Please try again in {minutes} minutes."
        else:
            user_message = "Rate limit reached. Please try again in a few minutes."
        super().__init__(
            message,
            user_message=user_message,
            details={"retry_after": retry_after, **(details or {})},
            cause=cause,
        )
        self.retry_after = retry_after


class NetworkError(ParleyError):
    """Connection failure or timeout talking to a collaborator."""

    code = "NETWORK_ERROR"
    retryable = True
    default_user_message = (
        "Unable to connect to the AI service. Please try again."
    )


class ProviderError(ParleyError):
    """Upstream failure that matched no specific class (5xx, overloaded)."""

    code = "PROVIDER_ERROR"
    retryable = True
    default_user_message = (
        "The AI service returned an error. This usually resolves on retry."
    )


class InvalidResponseError(ParleyError):
    """Structured model output failed to parse or validate."""

    code = "INVALID_AI_RESPONSE"
    retryable = True
    default_user_message = (
        "The AI generated an invalid response format. This usually resolves on retry."
    )

    def __init__(
        self,
        call: str,
        reason: str,
        *,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            f"Failed to parse AI response for {call}: {reason}",
            details={"call": call, **(details or {})},
            cause=cause,
        )
        self.call = call


# ============================================================================
# Domain and persistence errors
# ============================================================================


class NoInterviewsError(ParleyError):
    """Synthesis precondition not met: no completed interviews."""

    code = "NO_COMPLETED_INTERVIEWS"
    retryable = False
    default_user_message = (
        "At least one stakeholder interview must be completed before "
        "generating a report."
    )

    def __init__(self, campaign_id: str) -> None:
        super().__init__(
            f"No completed interviews found for campaign {campaign_id}",
            details={"campaign_id": campaign_id},
        )


class DatabaseError(ParleyError):
    """Persistence failure in a store backend."""

    code = "DATABASE_ERROR"
    retryable = True
    default_user_message = (
        "A database error occurred. Please try again or contact support if "
        "the issue persists."
    )

    def __init__(self, operation: str, *, cause: Exception | None = None) -> None:
        reason = f": {cause}" if cause else ""
        super().__init__(
            f"Database {operation} failed{reason}",
            details={"operation": operation},
            cause=cause,
        )
        self.operation = operation


class UsageCommitError(ParleyError):
    """Usage could not be written to the ledger.

    Kept outside the model/interview families: a lost usage delta is a
    billing-integrity problem and callers must not treat it as a transient
    model failure.
    """

    code = "USAGE_COMMIT_FAILED"
    retryable = False
    default_user_message = (
        "Usage for this operation could not be recorded. Support has been notified."
    )


class SessionNotFoundError(ParleyError):
    """Interview session id is unknown."""

    code = "SESSION_NOT_FOUND"
    retryable = False
    default_user_message = "This interview link is not valid."


class SessionBusyError(ParleyError):
    """Another turn is already in progress for the same session."""

    code = "SESSION_BUSY"
    retryable = True
    default_user_message = (
        "Your previous message is still being processed. Please wait a moment."
    )


class TurnLeaseLostError(ParleyError):
    """The turn lock expired before the turn was saved.

    Another request may have taken the session in the meantime, so the turn
    is discarded instead of overwriting whatever that request stored.
    """

    code = "TURN_LEASE_LOST"
    retryable = False
    default_user_message = (
        "Your message took too long to process and was not saved. Please send it again."
    )


class SessionCompletedError(ParleyError):
    """A message was submitted to an interview that already finished."""

    code = "SESSION_COMPLETED"
    retryable = False
    default_user_message = "This interview has already been completed. Thank you!"


class InvalidTierError(ParleyError):
    """Requested report tier is not configured."""

    code = "INVALID_TIER"
    retryable = False
    default_user_message = "The requested report tier is not available."


# ============================================================================
# Classification
# ============================================================================

_NETWORK_EXCEPTIONS: tuple[type[BaseException], ...] = (
    httpx.TransportError,
    ConnectionError,
    TimeoutError,
)


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def classify_http_status(
    status_code: int,
    body: str = "",
    headers: httpx.Headers | dict[str, str] | None = None,
) -> ParleyError:
    """Map an upstream HTTP failure to a classified error."""
    headers = headers or {}
    lowered = body.lower()
    details = {"status": status_code, "body": body[:500]}

    if status_code in (401, 403) or "authentication_error" in lowered:
        return AuthError(f"Model provider authentication failed ({status_code})", details=details)
    if status_code == 429 or "rate_limit_error" in lowered:
        return RateLimitError(
            f"Model provider rate limit exceeded ({status_code})",
            retry_after=_parse_retry_after(headers.get("retry-after")),
            details=details,
        )
    if status_code == 402 or "credit" in lowered or "quota" in lowered:
        return QuotaError(f"Model provider quota exceeded ({status_code})", details=details)
    if status_code in (408, 504):
        return NetworkError(f"Model provider timed out ({status_code})", details=details)
    return ProviderError(f"Model provider returned {status_code}", details=details)


def classify_error(error: BaseException) -> ParleyError:
    """Map any exception into the taxonomy. Classified errors pass through."""
    if isinstance(error, ParleyError):
        return error
    cause = error if isinstance(error, Exception) else None
    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        return classify_http_status(response.status_code, response.text, response.headers)
    if isinstance(error, _NETWORK_EXCEPTIONS):
        return NetworkError(
            f"Network connection failed: {error}",
            details={"error_type": type(error).__name__},
            cause=cause,
        )
    if isinstance(error, redis.exceptions.RedisError):
        return DatabaseError("redis operation", cause=cause)
    return ParleyError(
        str(error) or type(error).__name__,
        details={"error_type": type(error).__name__},
        cause=cause,
    )
