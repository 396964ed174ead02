"""Bounded fixed-interval polling.

Both node roles wait on external state (a parameter appearing in the store,
nodes turning Ready, an endpoint answering its health check). All of those
waits go through :func:`poll_until`: call a check at a fixed interval until it
returns something truthy, the deadline passes, the attempt bound is reached,
or the wait is cancelled. There is no backoff and no jitter.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from k3sjoin.errors import RetryableError


class CancelToken:
    """Cancellation flag shared between a waiter and whoever stops it"""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Block up to timeout seconds, returning True if cancelled meanwhile"""
        return self._event.wait(timeout)


@dataclass
class PollResult:
    """Outcome of a poll_until call"""

    succeeded: bool
    value: Any = None
    attempts: int = 0
    elapsed: float = 0.0
    cancelled: bool = False
    last_error: Optional[Exception] = None

    def __bool__(self) -> bool:
        return self.succeeded


def poll_until(
    check: Callable[[], Any],
    *,
    interval: float,
    timeout: Optional[float] = None,
    max_attempts: Optional[int] = None,
    cancel: Optional[CancelToken] = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Optional[Callable[[float], None]] = None,
    on_retry: Optional[Callable[[int, Optional[Exception]], None]] = None,
) -> PollResult:
    """Call check() every interval seconds until it returns a truthy value.

    A RetryableError raised by check counts as "not yet"; any other exception
    propagates. on_retry(attempt, error) is called after every unsuccessful
    attempt that will be followed by another one.

    When a cancel token is given and no sleep function is, the pause between
    attempts waits on the token so that cancel() ends the wait immediately.
    """
    if timeout is None and max_attempts is None:
        raise ValueError("poll_until needs a timeout or max_attempts")
    if interval < 0:
        raise ValueError("interval must be non-negative")

    start = clock()
    deadline = None if timeout is None else start + timeout
    attempts = 0
    last_error = None

    def result(succeeded: bool, value: Any = None, cancelled: bool = False) -> PollResult:
        return PollResult(
            succeeded=succeeded,
            value=value,
            attempts=attempts,
            elapsed=clock() - start,
            cancelled=cancelled,
            last_error=last_error,
        )

    while True:
        if cancel is not None and cancel.cancelled:
            return result(False, cancelled=True)

        attempts += 1
        value = None
        error = None
        try:
            value = check()
        except RetryableError as e:
            error = last_error = e

        if value:
            return result(True, value)

        if max_attempts is not None and attempts >= max_attempts:
            return result(False)

        delay = interval
        if deadline is not None:
            remaining = deadline - clock()
            if remaining <= 0:
                return result(False)
            delay = min(interval, remaining)

        if on_retry is not None:
            on_retry(attempts, error)

        if cancel is not None and sleep is None:
            if cancel.wait(delay):
                return result(False, cancelled=True)
        else:
            (sleep or time.sleep)(delay)
