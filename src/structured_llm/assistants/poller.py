from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

import structlog

from ..errors import RunFailedError, RunTimeoutError
from ..metrics import run_polls_total
from ..responses import RunStatus

log = structlog.get_logger()

Sleeper = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]
StatusFetcher = Callable[[], Awaitable[RunStatus]]


class RunPoller:
    """Wait for a run to leave ``queued`` / ``in_progress``.

    Each tick sleeps ``interval_seconds`` and then fetches the status once.
    Terminal failure statuses stop polling immediately. Once the deadline has
    passed no further fetch is made and ``RunTimeoutError`` is raised, whatever
    the last observed status was. An in-flight fetch is never cut short.
    """

    def __init__(
        self,
        fetch_status: StatusFetcher,
        *,
        interval_seconds: float = 10.0,
        deadline_seconds: float = 600.0,
        sleeper: Sleeper = asyncio.sleep,
        clock: Clock = time.monotonic,
    ):
        self._fetch_status = fetch_status
        self.interval_seconds = interval_seconds
        self.deadline_seconds = deadline_seconds
        self._sleep = sleeper
        self._clock = clock

    async def wait(self, initial: RunStatus) -> int:
        """Poll until completion; returns the number of status fetches made."""
        started = self._clock()
        status = initial
        polls = 0
        while True:
            if status is RunStatus.COMPLETED:
                log.info("assistant_run_completed", polls=polls)
                return polls
            if status.is_terminal_failure:
                log.warning("assistant_run_failed", status=status.value, polls=polls)
                raise RunFailedError(status.value)

            remaining = self._remaining(started, polls)
            await self._sleep(min(self.interval_seconds, remaining))
            self._remaining(started, polls)
            status = await self._fetch_status()
            polls += 1
            run_polls_total.labels(status=status.value).inc()
            log.debug("assistant_run_status", status=status.value, polls=polls)

    def _remaining(self, started: float, polls: int) -> float:
        elapsed = self._clock() - started
        if elapsed >= self.deadline_seconds:
            log.warning("assistant_run_timeout", elapsed_seconds=elapsed, polls=polls)
            raise RunTimeoutError(elapsed, self.deadline_seconds)
        return self.deadline_seconds - elapsed
