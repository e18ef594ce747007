"""Retry patterns for the HTTP transport (exponential backoff, retry predicate)."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

from pyhelki.const import (
    BACKOFF_JITTER_RATIO,
    DEFAULT_BACKOFF_BASE_DELAY,
    DEFAULT_BACKOFF_MAX_DELAY,
    DEFAULT_RETRY_ATTEMPTS,
    IDEMPOTENT_METHODS,
)
from pyhelki.exceptions import TransientTransportError, TransportError, TransportTimeoutError


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

_LOGGER = logging.getLogger(__name__)


@dataclass
class ExponentialBackoffConfig:
    """Configuration for exponential backoff pattern.

    Attributes:
        base_delay: Delay before the first retry in seconds (default 0.1).
        max_delay: Maximum delay in seconds (default 30.0).
        max_retries: Number of retries after the first attempt (default 5).
        exponential_base: Multiplier for exponential growth (default 2.0).
        jitter: Add up to 20% random extra delay (default True).
    """

    base_delay: float = DEFAULT_BACKOFF_BASE_DELAY
    max_delay: float = DEFAULT_BACKOFF_MAX_DELAY
    max_retries: int = DEFAULT_RETRY_ATTEMPTS
    exponential_base: float = 2.0
    jitter: bool = True


class ExponentialBackoff:
    """Exponential backoff calculator for retry delays.

    The delay for retry ``n`` (0-indexed) is ``base_delay * exponential_base**n``,
    capped at ``max_delay``. Jitter only ever adds up to 20% of that value, so
    successive delays keep increasing until the cap is reached.

    Example:
        backoff = ExponentialBackoff(base_delay=0.5, max_retries=3)

        for attempt in range(backoff.max_retries + 1):
            try:
                return await make_request()
            except TransientTransportError:
                if attempt == backoff.max_retries:
                    raise
                await asyncio.sleep(backoff.calculate_delay(attempt))
    """

    def __init__(
        self,
        base_delay: float = DEFAULT_BACKOFF_BASE_DELAY,
        max_delay: float = DEFAULT_BACKOFF_MAX_DELAY,
        max_retries: int = DEFAULT_RETRY_ATTEMPTS,
        exponential_base: float = 2.0,
        *,
        jitter: bool = True,
    ) -> None:
        """Initialize exponential backoff calculator.

        Args:
            base_delay: Delay before the first retry in seconds.
            max_delay: Maximum delay in seconds.
            max_retries: Number of retries after the first attempt.
            exponential_base: Multiplier for exponential growth.
            jitter: Add a small random extra delay (prevents thundering herd).
        """
        if max_retries < 0:
            msg = "max_retries must not be negative"
            raise ValueError(msg)

        self.config = ExponentialBackoffConfig(
            base_delay=base_delay,
            max_delay=max_delay,
            max_retries=max_retries,
            exponential_base=exponential_base,
            jitter=jitter,
        )

    @property
    def max_retries(self) -> int:
        """Get maximum number of retries."""
        return self.config.max_retries

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay for a given retry attempt.

        Args:
            attempt: Retry attempt number (0-indexed).

        Returns:
            Delay in seconds for this attempt.
        """
        delay = self.config.base_delay * (self.config.exponential_base**attempt)
        delay = min(delay, self.config.max_delay)

        if self.config.jitter:
            delay += random.uniform(0, delay * BACKOFF_JITTER_RATIO)  # noqa: S311

        return delay


def is_idempotent(method: str) -> bool:
    """Check if an HTTP method can be repeated safely."""
    return method.upper() in IDEMPOTENT_METHODS


def should_retry(method: str, exc: Exception) -> bool:
    """Decide whether a failed request is worth repeating.

    Retries network failures and 429 responses for any method. Timeouts and
    5xx responses are retried for idempotent methods only.

    Args:
        method: HTTP method of the failed request.
        exc: Exception raised by the attempt.

    Returns:
        True if the request should be retried.
    """
    if isinstance(exc, TransportTimeoutError):
        return is_idempotent(method)

    if isinstance(exc, TransientTransportError):
        return True

    if isinstance(exc, TransportError) and exc.status is not None:
        return is_idempotent(method) and exc.status >= HTTPStatus.INTERNAL_SERVER_ERROR

    return False


async def retry_with_backoff(
    func: Callable[[], Awaitable[Any]],
    *,
    method: str,
    backoff: ExponentialBackoff | None = None,
    retry_predicate: Callable[[str, Exception], bool] = should_retry,
    logger: logging.Logger | None = None,
) -> Any:
    """Execute a request function, retrying failures the predicate accepts.

    Args:
        func: Async function performing one attempt.
        method: HTTP method, passed to the predicate.
        backoff: Backoff calculator; defaults to ``ExponentialBackoff()``.
        retry_predicate: Decides whether an attempt's exception is retried.
        logger: Logger to use instead of the module logger.

    Returns:
        Result from func() if an attempt succeeds.

    Raises:
        TransportError: The last exception, once it is not retryable or all
            retries are exhausted.
    """
    if backoff is None:
        backoff = ExponentialBackoff()
    log = logger or _LOGGER

    total_attempts = backoff.max_retries + 1

    for attempt in range(total_attempts):
        try:
            return await func()
        except TransportError as exc:
            if not retry_predicate(method, exc):
                raise

            if attempt == total_attempts - 1:
                log.error("All %d attempts exhausted for %s request: %s", total_attempts, method, exc)
                raise

            delay = backoff.calculate_delay(attempt)
            log.warning(
                "Attempt %d/%d failed: %s. Retrying in %.2f seconds",
                attempt + 1,
                total_attempts,
                exc,
                delay,
            )
            await asyncio.sleep(delay)

    # Unreachable: the loop either returns or raises
    msg = "Unexpected state: no result and no exception"
    raise RuntimeError(msg)
