"""Structured logging configuration using structlog.

Provides JSON logging for production and console logging for development,
with contextvars binding and PII redaction. Interview participants share
names, emails and free text, so redaction is on by default.

Background work (synthesis runs, completion listeners) is started inside
``log_context`` so every line it emits carries the job or session it
belongs to, without threading identifiers through each call.
"""

import re
import sys
from collections.abc import Iterable, Iterator, MutableMapping
from contextlib import contextmanager
from typing import Any, cast

import structlog
from structlog.types import EventDict, WrappedLogger

SENSITIVE_KEYS: frozenset[str] = frozenset({
    "password",
    "secret",
    "token",
    "api_key",
    "apikey",
    "authorization",
    "credential",
    "credentials",
    "email",
    "contact_email",
    "recipient_email",
    "phone",
    "phone_number",
    "bot_token",
    "webhook_url",
    "auth_token",
    "user_text",
    "agent_text",
})

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
PHONE_PATTERN = re.compile(r"\+?[\d\s\-\(\)]{10,}")

REDACTED = "[REDACTED]"


class PIIRedactor:
    """Processor that redacts PII from log events.

    Key names are checked against SENSITIVE_KEYS (plus any deployment
    specific keys) first; string values are then scrubbed with regex
    patterns for accidental emails and phone numbers.
    """

    def __init__(self, extra_keys: Iterable[str] = ()) -> None:
        self._keys = SENSITIVE_KEYS | {k.lower() for k in extra_keys}

    @property
    def keys(self) -> frozenset[str]:
        return self._keys

    def __call__(
        self,
        _logger: WrappedLogger,
        _method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        """Redact PII from event dictionary."""
        return cast(EventDict, self._redact_dict(event_dict))

    def _redact_dict(self, data: MutableMapping[str, Any]) -> dict[str, Any]:
        """Redact a mapping.

        Args:
            data: Event dict or a nested mapping inside one

        Returns:
            New dict; sensitive keys replaced wholesale, other values scrubbed
        """
        result: dict[str, Any] = {}
        for key, value in data.items():
            if key.lower() in self._keys:
                result[key] = REDACTED
            elif isinstance(value, dict):
                result[key] = self._redact_dict(value)
            elif isinstance(value, str):
                result[key] = self._redact_string(value)
            elif isinstance(value, list):
                result[key] = self._redact_list(value)
            else:
                result[key] = value
        return result

    def _redact_string(self, value: str) -> str:
        """Replace emails and phone numbers embedded in free text."""
        value = EMAIL_PATTERN.sub("[EMAIL]", value)
        return PHONE_PATTERN.sub("[PHONE]", value)

    def _redact_list(self, items: list[Any]) -> list[Any]:
        result: list[Any] = []
        for item in items:
            if isinstance(item, dict):
                result.append(self._redact_dict(item))
            elif isinstance(item, str):
                result.append(self._redact_string(item))
            elif isinstance(item, list):
                result.append(self._redact_list(item))
            else:
                result.append(item)
        return result


@contextmanager
def log_context(**ids: object) -> Iterator[None]:
    """Bind identifiers to every log line emitted inside the block.

    Tasks created inside the block copy the context, so they keep the
    identifiers after the block exits. ``None`` values are skipped and the
    rest are logged as strings.

    Example:
        with log_context(job_id=job.id, campaign_id=job.campaign_id):
            task = asyncio.create_task(run(job))
    """
    bound = {key: str(value) for key, value in ids.items() if value is not None}
    with structlog.contextvars.bound_contextvars(**bound):
        yield


def setup_logging(
    level: str = "INFO",
    format: str = "json",
    redact_pii: bool = True,
    redact_keys: Iterable[str] = (),
) -> None:
    """Configure structured logging.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR)
        format: Output format - "json" for production, "console" for development
        redact_pii: Whether to redact PII from logs
        redact_keys: Extra event keys to redact on top of SENSITIVE_KEYS
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if redact_pii:
        processors.append(PIIRedactor(redact_keys))

    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    level_map = {
        "DEBUG": 10,
        "INFO": 20,
        "WARNING": 30,
        "ERROR": 40,
        "CRITICAL": 50,
    }
    level_num = level_map.get(level.upper(), 20)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance bound to the given name.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        A bound structlog logger
    """
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
