import pytest

from structured_llm.assistants.poller import RunPoller
from structured_llm.errors import RunFailedError, RunTimeoutError
from structured_llm.responses import RunStatus


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedStatus:
    def __init__(self, *statuses: RunStatus, repeat_last: bool = False) -> None:
        self._statuses = list(statuses)
        self._repeat_last = repeat_last
        self.calls = 0

    async def __call__(self) -> RunStatus:
        self.calls += 1
        if self._repeat_last and len(self._statuses) == 1:
            return self._statuses[0]
        return self._statuses.pop(0)


def _poller(fetch, clock: FakeClock, *, deadline: float = 600.0) -> RunPoller:
    return RunPoller(fetch, interval_seconds=10.0, deadline_seconds=deadline, sleeper=clock.sleep, clock=clock)


@pytest.mark.asyncio
async def test_completes_after_exactly_three_polls():
    clock = FakeClock()
    fetch = ScriptedStatus(RunStatus.IN_PROGRESS, RunStatus.IN_PROGRESS, RunStatus.COMPLETED)

    polls = await _poller(fetch, clock).wait(RunStatus.QUEUED)

    assert polls == 3
    assert fetch.calls == 3
    assert clock.sleeps == [10.0, 10.0, 10.0]


@pytest.mark.asyncio
async def test_already_completed_run_needs_no_polls():
    clock = FakeClock()
    fetch = ScriptedStatus()

    assert await _poller(fetch, clock).wait(RunStatus.COMPLETED) == 0
    assert fetch.calls == 0
    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_failed_status_stops_polling_immediately():
    clock = FakeClock()
    fetch = ScriptedStatus(RunStatus.IN_PROGRESS, RunStatus.FAILED, RunStatus.COMPLETED)

    with pytest.raises(RunFailedError) as exc:
        await _poller(fetch, clock).wait(RunStatus.QUEUED)

    assert exc.value.status == "failed"
    assert fetch.calls == 2


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status",
    [RunStatus.REQUIRES_ACTION, RunStatus.CANCELLING, RunStatus.CANCELLED, RunStatus.EXPIRED],
)
async def test_other_terminal_statuses_fail(status):
    clock = FakeClock()
    fetch = ScriptedStatus(status)

    with pytest.raises(RunFailedError) as exc:
        await _poller(fetch, clock).wait(RunStatus.IN_PROGRESS)

    assert exc.value.status == status.value
    assert fetch.calls == 1


@pytest.mark.asyncio
async def test_initial_failure_issues_no_polls():
    clock = FakeClock()
    fetch = ScriptedStatus()

    with pytest.raises(RunFailedError):
        await _poller(fetch, clock).wait(RunStatus.FAILED)

    assert fetch.calls == 0


@pytest.mark.asyncio
async def test_timeout_is_never_raised_before_the_deadline():
    clock = FakeClock()
    fetch = ScriptedStatus(RunStatus.IN_PROGRESS, repeat_last=True)

    with pytest.raises(RunTimeoutError) as exc:
        await _poller(fetch, clock, deadline=35.0).wait(RunStatus.QUEUED)

    assert exc.value.elapsed_seconds == 35.0
    assert exc.value.deadline_seconds == 35.0
    # Fetches at 10, 20 and 30 seconds; the last sleep is cut to the deadline.
    assert fetch.calls == 3
    assert clock.sleeps == [10.0, 10.0, 10.0, 5.0]
    assert clock.now == 35.0


@pytest.mark.asyncio
async def test_completion_seen_after_the_deadline_still_times_out():
    clock = FakeClock()
    fetch = ScriptedStatus(RunStatus.IN_PROGRESS, RunStatus.IN_PROGRESS, RunStatus.IN_PROGRESS, RunStatus.COMPLETED)

    with pytest.raises(RunTimeoutError):
        await _poller(fetch, clock, deadline=35.0).wait(RunStatus.QUEUED)

    assert fetch.calls == 3
    assert clock.now == 35.0


@pytest.mark.asyncio
async def test_slow_fetch_that_crosses_the_deadline_is_not_trusted():
    clock = FakeClock()

    async def slow_fetch() -> RunStatus:
        clock.now += 30.0
        return RunStatus.IN_PROGRESS

    with pytest.raises(RunTimeoutError) as exc:
        await _poller(slow_fetch, clock, deadline=35.0).wait(RunStatus.QUEUED)

    assert exc.value.elapsed_seconds == 40.0
    assert clock.sleeps == [10.0]
