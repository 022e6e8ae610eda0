import time as builtin_time
from typing import Optional


class StopWatch(object):
    """A simple timer helper, measuring the duration of a request.

    Not thread-safe, a watch is meant to be used by a single thread.
    """

    def __init__(self) -> None:
        self._started_at: Optional[float] = None

    def start(self):
        # type: () -> StopWatch
        """Starts the watch."""
        self._started_at = builtin_time.monotonic()
        return self

    def elapsed(self) -> float:
        """Get how many seconds have elapsed since the watch was started.

        :return: Number of seconds elapsed
        :rtype: float
        """
        if self._started_at is None:
            raise RuntimeError("Can not get the elapsed time of a stopwatch if it has not been started")
        return builtin_time.monotonic() - self._started_at
