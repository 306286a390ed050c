"""
Retry policy shared by the outbound embedding and chat-completion calls.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

import httpx
from tenacity import AsyncRetrying, RetryCallState, RetryError, retry_if_exception, stop_after_attempt

from .exceptions import UpstreamUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_retryable(exc: BaseException) -> bool:
    """Network failures and non-success HTTP responses are retried."""
    return isinstance(exc, (httpx.TransportError, httpx.HTTPStatusError))


def _describe(exc: BaseException) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}"
    return str(exc) or type(exc).__name__


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry with exponential backoff.

    An operation is attempted once and then retried up to max_retries
    times, sleeping backoff_base ** attempt seconds before each retry.
    """

    max_retries: int = 3
    backoff_base: float = 2.0
    retryable: Callable[[BaseException], bool] = is_retryable

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def backoff(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        return self.backoff_base ** attempt

    async def run(self, operation: Callable[[], Awaitable[T]], name: str) -> T:
        """
        Run an async operation under this policy.

        Args:
            operation: Zero-argument coroutine function performing one attempt.
            name: Label used in log messages and errors.

        Returns:
            The operation's result.

        Raises:
            UpstreamUnavailableError: If every attempt failed with a retryable error.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=lambda state: self.backoff(state.attempt_number),
            retry=retry_if_exception(self.retryable),
            before_sleep=self._before_sleep(name),
        )
        try:
            return await retrying(operation)
        except RetryError as e:
            last = e.last_attempt.exception()
            logger.error(f"{name} failed after {self.max_attempts} attempts: {_describe(last)}")
            raise UpstreamUnavailableError(
                f"{name} unavailable after {self.max_attempts} attempts: {_describe(last)}"
            ) from last

    def _before_sleep(self, name: str) -> Callable[[RetryCallState], None]:
        def log_retry(state: RetryCallState) -> None:
            delay = state.next_action.sleep if state.next_action else 0
            logger.warning(
                f"{name}: retry {state.attempt_number}/{self.max_retries} "
                f"after {delay:g}s due to: {_describe(state.outcome.exception())}"
            )

        return log_retry
