"""
Retry utilities for skill execution.

Backoff delay calculation, retryability classification of error text,
and a generic async retry loop.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional, Union

from skillchain.config import BackoffStrategy, RetryConfig, RetryableError

logger = logging.getLogger(__name__)

# Exponent cap keeps 2**n finite; any realistic max_delay_s is reached long before.
_MAX_EXPONENT = 62

RATE_LIMIT_MARKERS = ("rate limit", "429", "too many requests")
TIMEOUT_MARKERS = ("timeout", "timed out")
SERVER_ERROR_MARKERS = (
    "500",
    "502",
    "503",
    "504",
    "internal server error",
    "bad gateway",
    "service unavailable",
)
NETWORK_MARKERS = ("connection", "network", "dns", "resolve", "unreachable")

_CATEGORY_MARKERS = (
    (RetryableError.RATE_LIMIT, RATE_LIMIT_MARKERS),
    (RetryableError.TIMEOUT, TIMEOUT_MARKERS),
    (RetryableError.SERVER_ERROR, SERVER_ERROR_MARKERS),
    (RetryableError.NETWORK, NETWORK_MARKERS),
)


def calculate_delay(config: RetryConfig, attempt: int) -> float:
    """
    Delay in seconds to wait after the given (1-based) failed attempt.

    Fixed returns initial_delay_s. Exponential doubles per attempt starting
    from initial_delay_s. ExponentialJitter adds uniform jitter in
    [0, base/2). The result never exceeds max_delay_s.
    """
    if config.backoff == BackoffStrategy.FIXED:
        delay = config.initial_delay_s
    else:
        exponent = min(max(attempt - 1, 0), _MAX_EXPONENT)
        delay = config.initial_delay_s * (2 ** exponent)
        if config.backoff == BackoffStrategy.EXPONENTIAL_JITTER:
            delay += random.random() * (delay / 2)

    return min(delay, config.max_delay_s)


def classify_error(error: Union[str, BaseException]) -> set:
    """Every error category whose vocabulary matches the error text"""
    msg = str(error).lower()
    return {
        category
        for category, markers in _CATEGORY_MARKERS
        if any(marker in msg for marker in markers)
    }


def is_error_retryable(error: Union[str, BaseException], config: RetryConfig) -> bool:
    """
    Check if an error is retryable under the configuration.

    ALL makes every error retryable. Otherwise the error text is matched
    case-insensitively against each category's vocabulary, and a match
    only counts when that category is enabled.
    """
    if RetryableError.ALL in config.retryable_errors:
        return True

    return any(category in config.retryable_errors for category in classify_error(error))


class RetryError(Exception):
    """Base for errors raised by with_retry"""

    def __init__(self, message: str, attempts: int, last_error: BaseException):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class RetriesExhausted(RetryError):
    """All permitted attempts failed"""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(
            f"exhausted {attempts} retry attempts: {last_error}", attempts, last_error
        )


class NotRetryable(RetryError):
    """The operation failed with an error that must not be retried"""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"non-retryable error: {last_error}", attempts, last_error)


async def with_retry(
    config: RetryConfig,
    operation_name: str,
    operation: Callable[[], Awaitable[Any]],
    is_retryable: Optional[Callable[[BaseException], bool]] = None,
) -> Any:
    """
    Run an async operation, retrying failures per the configuration.

    Args:
        config: Retry configuration
        operation_name: Name used in log messages
        operation: Zero-argument factory returning a fresh awaitable per attempt
        is_retryable: Error predicate (default: is_error_retryable against config)

    Returns:
        The operation's result

    Raises:
        RetriesExhausted: If max_retries retries all failed
        NotRetryable: If an error is rejected by the predicate
    """
    if is_retryable is None:
        def is_retryable(e: BaseException) -> bool:
            return is_error_retryable(e, config)

    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            attempt += 1

            if attempt > config.max_retries:
                raise RetriesExhausted(attempt, e) from e

            if not is_retryable(e):
                raise NotRetryable(attempt, e) from e

            delay = calculate_delay(config, attempt)
            logger.warning(
                f"Retrying {operation_name} after error "
                f"(attempt {attempt}/{config.max_retries}, delay {delay:.3f}s): {e}"
            )
            await asyncio.sleep(delay)
