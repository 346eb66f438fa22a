from __future__ import annotations

import functools
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from backoffice.domain.errors import RetriesExhaustedError, is_transient

log = logging.getLogger("backoffice.http")

T = TypeVar("T")


def exponential_backoff(base_ms: int = 300) -> Callable[[int], float]:
    """Delay in seconds before retry number ``attempt`` (0-based): base * 2**attempt ms."""

    def delay(attempt: int) -> float:
        return (base_ms * (2 ** attempt)) / 1000

    return delay


def retrying(
    max_attempts: int = 3,
    backoff: Callable[[int], float] | None = None,
    retryable: Callable[[BaseException], bool] = is_transient,
    sleep: Callable[[float], None] = time.sleep,
):
    """Retry an idempotent call on transient failures.

    Non-retryable errors propagate untouched on the first occurrence. When
    every attempt failed with a retryable error, ``RetriesExhaustedError`` is
    raised with the last error chained.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    delay_for = backoff or exponential_backoff()

    def decorator(fn: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(fn)
        def wrapper(*args, **kwargs) -> T:
            last_err: BaseException | None = None
            for attempt in range(max_attempts):
                try:
                    return fn(*args, **kwargs)
                except Exception as e:
                    if not retryable(e):
                        raise
                    last_err = e
                    if attempt < max_attempts - 1:
                        wait = delay_for(attempt)
                        log.warning(
                            "retry_scheduled fn=%s attempt=%s wait_s=%.3f error=%s",
                            fn.__name__, attempt + 1, wait, e,
                        )
                        sleep(wait)
            assert last_err is not None
            log.error("retries_exhausted fn=%s attempts=%s", fn.__name__, max_attempts)
            raise RetriesExhaustedError(max_attempts, last_err) from last_err

        return wrapper

    return decorator


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay_ms: int = 300
    retryable: Callable[[BaseException], bool] = is_transient
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False)

    def wrap(self, fn: Callable[..., T]) -> Callable[..., T]:
        return retrying(
            max_attempts=self.max_attempts,
            backoff=exponential_backoff(self.base_delay_ms),
            retryable=self.retryable,
            sleep=self.sleep,
        )(fn)

    def call(self, fn: Callable[..., T], *args, **kwargs) -> T:
        return self.wrap(fn)(*args, **kwargs)
