from __future__ import annotations

import time
from typing import Callable, Optional, TypeVar

T = TypeVar("T")


class PollTimeout(TimeoutError):
    pass


def poll_until(
    check: Callable[[], Optional[T]],
    *,
    timeout_s: float,
    interval_s: float,
    description: str = "condition",
    sleep: Callable[[float], None] = time.sleep,
    monotonic: Callable[[], float] = time.monotonic,
) -> T:
    """Call ``check`` until it returns a value other than ``None``.

    Bounded by ``timeout_s``; raises ``PollTimeout`` once the deadline passes.
    Exceptions from ``check`` propagate immediately.
    """
    if timeout_s <= 0:
        raise ValueError("timeout_s must be positive")
    interval_s = max(0.0, interval_s)
    deadline = monotonic() + timeout_s
    attempts = 0
    while True:
        attempts += 1
        result = check()
        if result is not None:
            return result
        remaining = deadline - monotonic()
        if remaining <= 0:
            raise PollTimeout(f"timed out waiting for {description} after {attempts} attempts")
        sleep(min(interval_s, remaining))
