"""Bounded fixed-delay retry policies used by the reconciliation loops."""

from collections.abc import Callable
from typing import Any

from tenacity import RetryCallState, Retrying, stop_after_attempt, wait_fixed
from tenacity.stop import stop_base


class stop_before_deadline(stop_base):
    """Stop when waiting ``interval`` more seconds would pass ``deadline``.

    ``deadline`` is a value of ``clock()``; ``None`` never stops.
    """

    def __init__(self, deadline: float | None, interval: float, clock: Callable[[], float]):
        self.deadline = deadline
        self.interval = interval
        self.clock = clock

    def __call__(self, retry_state: RetryCallState) -> bool:
        if self.deadline is None:
            return False
        return self.clock() + self.interval > self.deadline


def bounded_retrying(
    attempts: int,
    interval: float,
    deadline: float | None,
    sleep: Callable[[float], None],
    clock: Callable[[], float],
    **kwargs: Any,
) -> Retrying:
    """Build a ``Retrying`` making at most ``attempts`` attempts ``interval`` seconds apart.

    Args:
        attempts: Total number of attempts, including the first
        interval: Fixed delay between attempts
        deadline: Optional ``clock()`` value no wait may extend past
        sleep: Blocking sleep used between attempts
        clock: Clock compared against ``deadline``
        **kwargs: Passed through to ``Retrying`` (``retry``, ``before_sleep``, ...)
    """
    return Retrying(
        sleep=sleep,
        stop=stop_after_attempt(attempts) | stop_before_deadline(deadline, interval, clock),
        wait=wait_fixed(interval),
        **kwargs,
    )


def last_result(retry_state: RetryCallState) -> Any:
    """Return the final attempt's result once retries are exhausted."""
    return retry_state.outcome.result()
