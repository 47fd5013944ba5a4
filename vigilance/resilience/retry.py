"""Bounded retries with exponential backoff, and primary/fallback pairs.

``with_retry`` retries every failure up to ``max_attempts``; it does not
consult ``is_retryable_error``. The classifier is available to callers that
want to decide for themselves whether an error is worth another attempt.
"""

import random
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from vigilance.config.settings import Settings
from vigilance.logging.logger import Log
from vigilance.processor.exceptions import ProcessingCancelledError
from vigilance.resilience.cancellation import CancellationToken
from vigilance.resilience.error_logger import ErrorLogEntry, ErrorLogger

T = TypeVar("T")

UNKNOWN_OPERATION = "Unknown operation"

_RETRYABLE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"network", re.IGNORECASE),
    re.compile(r"timeout", re.IGNORECASE),
    re.compile(r"rate limit", re.IGNORECASE),
    re.compile(r"temporary", re.IGNORECASE),
    re.compile(r"502"),
    re.compile(r"503"),
    re.compile(r"504"),
]


@dataclass(frozen=True)
class RetryConfig:
    """Backoff policy. Delays are in milliseconds."""

    max_attempts: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 10000
    backoff_multiplier: float = 2.0
    jitter_ms: int = 1000

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay_ms < 0 or self.max_delay_ms < 0 or self.jitter_ms < 0:
            raise ValueError("delays must not be negative")

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryConfig":
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay_ms=settings.retry_base_delay_ms,
            max_delay_ms=settings.retry_max_delay_ms,
            backoff_multiplier=settings.retry_backoff_multiplier,
        )

    def backoff_ms(self, attempt: int) -> float:
        """Capped delay after the given 1-based failed attempt, without jitter."""
        delay = self.base_delay_ms * self.backoff_multiplier ** (attempt - 1)
        return min(delay, self.max_delay_ms)


def with_retry(
    operation: Callable[[], T],
    config: RetryConfig | None = None,
    context: str | None = None,
    *,
    error_logger: ErrorLogger | None = None,
    cancellation: CancellationToken | None = None,
    sleep: Callable[[float], None] = time.sleep,
    jitter: Callable[[], float] = random.random,
) -> T:
    """Call *operation* until it succeeds or attempts run out.

    Every failed attempt is logged. Between attempts the caller's thread
    waits ``min(base * multiplier ** (attempt - 1), max) + jitter`` ms; with
    a cancellation token the wait is interruptible.

    Raises:
        The last error raised by *operation* once all attempts failed.
        ProcessingCancelledError: if *cancellation* fires before an attempt.
    """
    policy = config or RetryConfig()
    label = context or UNKNOWN_OPERATION
    last_error: Exception | None = None

    for attempt in range(1, policy.max_attempts + 1):
        if cancellation is not None:
            cancellation.raise_if_cancelled(label)
        try:
            return operation()
        except ProcessingCancelledError:
            raise
        except Exception as exc:
            last_error = exc
            entry = ErrorLogEntry(
                error=exc,
                attempt=attempt,
                max_attempts=policy.max_attempts,
                context=label,
            )
            if error_logger is not None:
                error_logger.log_error(entry)
            else:
                Log.warning(f"{label}: attempt {attempt}/{policy.max_attempts} failed: {exc}")

        if attempt == policy.max_attempts:
            break

        delay_seconds = (policy.backoff_ms(attempt) + jitter() * policy.jitter_ms) / 1000
        if cancellation is not None:
            if cancellation.wait(delay_seconds):
                raise ProcessingCancelledError(f"Processing cancelled while retrying {label}")
        else:
            sleep(delay_seconds)

    if last_error is None:
        raise ValueError("max_attempts must be at least 1")
    raise last_error


def create_fallback_handler(
    primary: Callable[[], T],
    fallback: Callable[[], T],
    context: str,
    *,
    error_logger: ErrorLogger | None = None,
) -> Callable[[], T]:
    """Build a callable that runs *primary*, and *fallback* if primary raises.

    If the fallback raises too, its error (not the primary's) propagates.
    """

    def _log(exc: Exception, suffix: str) -> None:
        entry = ErrorLogEntry(error=exc, attempt=1, max_attempts=1, context=f"{context} - {suffix}")
        if error_logger is not None:
            error_logger.log_error(entry)
        else:
            Log.warning(f"{entry.context}: {exc}")

    def run() -> T:
        try:
            return primary()
        except ProcessingCancelledError:
            raise
        except Exception as primary_error:
            _log(primary_error, "Primary operation failed, using fallback")
            try:
                return fallback()
            except Exception as fallback_error:
                _log(fallback_error, "Fallback operation also failed")
                raise

    return run


def is_retryable_error(error: BaseException) -> bool:
    """True when the error's message or class name looks transient."""
    message = str(error)
    name = type(error).__name__
    return any(
        pattern.search(message) or pattern.search(name) for pattern in _RETRYABLE_PATTERNS
    )
