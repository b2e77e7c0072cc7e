"""Retry executor with exponential backoff, jitter and per-attempt key rotation."""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential, wait_random

from studygen.utils import get_logger, log_retry
from .errors import MalformedResponseError
from .key_pool import KeyPool

LOG = get_logger()

T = TypeVar('T')

RETRYABLE_STATUS_CODES = frozenset({429, 503})
RETRYABLE_MESSAGE_MARKERS = ('overloaded', 'UNAVAILABLE', 'fetch failed')
JITTER_MAX_MS = 1000

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BASE_DELAY_MS = 2000


def _status_of(error: BaseException) -> Optional[int]:
    # GenerationAPIError.status, google.genai APIError.code, httpx-style status_code
    for attr in ('status', 'code', 'status_code'):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    return None


def is_retryable(error: BaseException) -> bool:
    # model output may echo words like "overloaded"; it is never a transient failure
    if isinstance(error, MalformedResponseError):
        return False
    if _status_of(error) in RETRYABLE_STATUS_CODES:
        return True
    message = str(error)
    return any(marker in message for marker in RETRYABLE_MESSAGE_MARKERS)


class BackoffController:

    def __init__(self, key_pool: KeyPool, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.key_pool = key_pool
        self._sleep = sleep

    async def execute(
        self,
        operation: Callable[[str], Awaitable[T]],
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
        task: str = 'generation',
    ) -> T:
        """Run ``operation`` with a fresh key per attempt.

        The delay after failed attempt ``i`` (0-based) is
        ``base_delay_ms * 2**i`` plus up to one second of jitter. Non-retryable
        errors and the error of the final attempt are raised unchanged.
        """
        if max_attempts < 1:
            raise ValueError('max_attempts must be >= 1')

        def _before_sleep(state: RetryCallState):
            delay = state.next_action.sleep if state.next_action else 0
            log_retry(task, state.attempt_number, max_attempts, round(delay * 1000), str(state.outcome.exception()))

        retrying = AsyncRetrying(
            sleep=self._sleep,
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=base_delay_ms / 1000.0, exp_base=2) + wait_random(0, JITTER_MAX_MS / 1000.0),
            retry=retry_if_exception(is_retryable),
            before_sleep=_before_sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                credential = self.key_pool.next()
                return await operation(credential)
