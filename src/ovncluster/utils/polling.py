"""Bounded polling with an injectable clock.

[poll_until()][ovncluster.utils.polling.poll_until] re-evaluates an async
predicate at a fixed interval until it holds or a deadline passes. The
clock and the sleep function are parameters so tests can drive time
explicitly instead of waiting for it.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    Clock = Callable[[], float]
    Sleep = Callable[[float], Awaitable[None]]


#: Lower bound for the derived poll interval, in seconds.
MIN_POLL_INTERVAL = 0.05

#: Share of the timeout used as the poll interval when none is given.
POLL_INTERVAL_RATIO = 0.01


def default_interval(timeout: float) -> float:
    """Return the poll interval used for ``timeout`` when none is given."""
    return max(timeout * POLL_INTERVAL_RATIO, MIN_POLL_INTERVAL)


async def poll_until(
    predicate: Callable[[], Awaitable[bool]],
    *,
    timeout: float,  # noqa: ASYNC109
    interval: float | None = None,
    clock: Clock = time.monotonic,
    sleep: Sleep = asyncio.sleep,
) -> int:
    """Await ``predicate`` until it returns True or ``timeout`` elapses.

    The predicate is evaluated immediately, then after every sleep. A sleep
    never extends past the deadline: the last one is clipped to the
    remaining budget, and the predicate gets one final evaluation at the
    deadline. Each evaluation is itself capped at the remaining budget, or
    at one interval once the deadline is reached; an evaluation cut short
    is cancelled and counts as not holding.

    Args:
        predicate: Async callable returning True once the condition holds.
            Exceptions other than ``TimeoutError`` propagate to the caller.
        timeout: Total budget in seconds. ``0`` evaluates the predicate once.
        interval: Seconds between evaluations. Defaults to
            [default_interval()][ovncluster.utils.polling.default_interval].
        clock: Monotonic clock returning seconds.
        sleep: Coroutine function used to wait between evaluations.

    Returns:
        Number of predicate evaluations performed.

    Raises:
        ValueError: If ``timeout`` is negative or ``interval`` is not positive.
        TimeoutError: If the predicate did not hold before the deadline.
    """
    if timeout < 0:
        raise ValueError(f"timeout must be >= 0, got {timeout}")
    step = default_interval(timeout) if interval is None else interval
    if step <= 0:
        raise ValueError(f"interval must be > 0, got {step}")

    deadline = clock() + timeout
    attempts = 0

    while True:
        attempts += 1
        try:
            reached = await asyncio.wait_for(
                predicate(), timeout=max(deadline - clock(), step)
            )
        except TimeoutError:
            reached = False
        if reached:
            return attempts

        remaining = deadline - clock()
        if remaining <= 0:
            raise TimeoutError(f"condition not met within {timeout}s ({attempts} attempts)")
        await sleep(min(step, remaining))
