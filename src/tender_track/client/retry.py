from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_retryable(exc: BaseException) -> bool:
    """Input defects are surfaced at once; anything else may be transient."""

    return bool(getattr(exc, "retryable", True))


@dataclass
class RetryPolicy:
    """Capped exponential backoff around one gateway call.

    Retry ``k`` waits ``min(base_delay * 2 ** (k - 1), max_delay)`` seconds.
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    sleep: Callable[[float], None] = time.sleep
    should_retry: Callable[[BaseException], bool] = is_retryable
    retry_count: int = field(default=0, init=False)

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * 2 ** (attempt - 1), self.max_delay)

    def call(self, operation: Callable[[], T]) -> T:
        while True:
            try:
                result = operation()
            except Exception as exc:
                if self.retry_count >= self.max_retries or not self.should_retry(exc):
                    self.retry_count = 0
                    raise
                self.retry_count += 1
                delay = self.delay_for(self.retry_count)
                logger.warning(
                    "Gateway call failed (%s); retry %s/%s in %.1fs",
                    exc,
                    self.retry_count,
                    self.max_retries,
                    delay,
                )
                self.sleep(delay)
                continue
            self.retry_count = 0
            return result
