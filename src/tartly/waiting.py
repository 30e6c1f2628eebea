"""Poll-until-true helper used in place of fixed sleeps."""

import time
from typing import Callable


def poll_until(
    predicate: Callable[[], bool],
    timeout: float,
    interval: float = 0.5,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Evaluate *predicate* until it is true or *timeout* seconds pass.

    The predicate is always evaluated at least once, and once more after
    the deadline so a transition during the final sleep is not missed.

    Returns:
        True if the predicate held within the timeout, False otherwise
    """
    deadline = clock() + timeout
    while True:
        if predicate():
            return True
        remaining = deadline - clock()
        if remaining <= 0:
            return False
        sleep(min(interval, remaining))
