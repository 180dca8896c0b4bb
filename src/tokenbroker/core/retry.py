"""Bounded retry around the resolve-then-exchange round trip."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRIES = 3

FailedAttemptCallback = Callable[[BaseException, int], None]


def is_server_error(exc: BaseException) -> bool:
    """Only failures carrying an HTTP status of 500 or above are transient."""
    status = getattr(exc, "status", None)
    return isinstance(status, int) and status >= 500


def default_wait() -> wait_base:
    return wait_exponential(multiplier=1, min=1, max=30)


async def retry_on_server_error(
    fn: Callable[[], Awaitable[T]],
    *,
    on_failed_attempt: FailedAttemptCallback | None = None,
    retries: int = DEFAULT_RETRIES,
    wait: wait_base | None = None,
    should_retry: Callable[[BaseException], bool] = is_server_error,
) -> T:
    """Run *fn* up to ``retries + 1`` times.

    *on_failed_attempt* sees every failure, including the one that ends the
    loop. The last failure is re-raised unchanged.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(retries + 1),
        wait=wait if wait is not None else default_wait(),
        retry=retry_if_exception(should_retry),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            try:
                return await fn()
            except Exception as e:
                if on_failed_attempt is not None:
                    on_failed_attempt(e, attempt.retry_state.attempt_number)
                raise
    raise AssertionError("unreachable")  # pragma: no cover
