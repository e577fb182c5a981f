"""
Retry with exponential backoff.

Applied uniformly by the dashboard client to every API call. The server
request path does not retry; a failed query surfaces as a 500.

Backoff schedule with the defaults: 1s, 2s, 4s (3 retries after the first try).
"""

import time
import logging
from typing import Callable, Optional, Tuple, Type, TypeVar

log = logging.getLogger(__name__)

T = TypeVar('T')

MAX_RETRIES = 3
INITIAL_BACKOFF_SECONDS = 1.0
BACKOFF_MULTIPLIER = 2.0
DEFAULT_TIMEOUT_SECONDS = 10.0


def backoff_delays(
    max_retries: int = MAX_RETRIES,
    base_delay: float = INITIAL_BACKOFF_SECONDS,
    multiplier: float = BACKOFF_MULTIPLIER,
):
    """Sleep durations between attempts: base, base*m, base*m^2, ..."""
    return [base_delay * (multiplier ** i) for i in range(max_retries)]


def retry_with_backoff(
    fn: Callable[[], T],
    *,
    max_retries: int = MAX_RETRIES,
    base_delay: float = INITIAL_BACKOFF_SECONDS,
    multiplier: float = BACKOFF_MULTIPLIER,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    should_retry: Optional[Callable[[BaseException], bool]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call fn until it succeeds or retries are exhausted.

    Args:
        fn: Zero-argument callable
        max_retries: Retries after the first attempt
        base_delay: Seconds before the first retry (doubles each retry)
        retry_on: Exception types eligible for retry
        should_retry: Optional predicate to veto retrying a given error
        sleep: Injectable sleep for tests

    Raises:
        The last error once retries are exhausted, or any non-retryable error
        immediately.
    """
    delays = backoff_delays(max_retries, base_delay, multiplier)

    for attempt in range(max_retries + 1):
        try:
            return fn()
        except retry_on as e:
            if should_retry is not None and not should_retry(e):
                raise
            if attempt >= max_retries:
                log.error("retry_exhausted attempts=%d err=%s", attempt + 1, str(e)[:100])
                raise
            sleep_s = delays[attempt]
            log.warning(
                "retry attempt=%d/%d sleep_s=%.2f err=%s",
                attempt + 1, max_retries, sleep_s, str(e)[:100]
            )
            sleep(sleep_s)

    raise RuntimeError("unreachable")  # pragma: no cover
