"""Tests for the completion polling loop."""

import asyncio
from types import SimpleNamespace

import pytest

from prdriver import waiter
from prdriver.waiter import (
    CompletionTimeoutError,
    ErrorBudgetExceededError,
    WaitOptions,
    wait_for_completion,
)


class FakeClock:
    """Monotonic clock that only moves when the waiter sleeps."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def monotonic(self):
        return self.now

    async def sleep(self, delay):
        self.sleeps.append(delay)
        self.now += delay


class ScriptedSource:
    """Status source that replays a script of statuses and exceptions."""

    def __init__(self, script, repeat_last=False):
        self.script = list(script)
        self.repeat_last = repeat_last
        self.calls = 0

    async def get_agent_status(self):
        self.calls += 1
        if len(self.script) > 1 or not self.repeat_last:
            item = self.script.pop(0)
        else:
            item = self.script[0]
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def clock(monkeypatch):
    fake = FakeClock()
    monkeypatch.setattr(waiter, "time", SimpleNamespace(monotonic=fake.monotonic))
    monkeypatch.setattr(waiter, "asyncio", SimpleNamespace(sleep=fake.sleep))
    return fake


def test_returns_first_non_running_status(clock):
    changes = []
    source = ScriptedSource(["running", "running", "finished"])

    result = asyncio.run(
        wait_for_completion(source, WaitOptions(on_status_change=changes.append))
    )

    assert result == "finished"
    assert changes == ["running", "finished"]
    assert source.calls == 3


def test_sleeps_before_each_poll(clock):
    source = ScriptedSource(["idle"])

    result = asyncio.run(wait_for_completion(source, WaitOptions(poll_interval=1.5)))

    assert result == "idle"
    assert clock.sleeps == [1.5]


def test_unknown_status_is_terminal(clock):
    source = ScriptedSource(["running", "totally_new_status"])
    assert asyncio.run(wait_for_completion(source)) == "totally_new_status"


def test_times_out_while_running(clock):
    source = ScriptedSource(["running"], repeat_last=True)
    options = WaitOptions(timeout=5, poll_interval=1)

    with pytest.raises(CompletionTimeoutError) as excinfo:
        asyncio.run(wait_for_completion(source, options))

    assert excinfo.value.timeout == 5
    assert isinstance(excinfo.value, TimeoutError)
    assert "5s" in str(excinfo.value)
    assert 5 <= clock.now <= 6


def test_error_budget_exhausted_after_exact_count(clock):
    failure = ConnectionError("network down")
    source = ScriptedSource([failure], repeat_last=True)

    with pytest.raises(ErrorBudgetExceededError) as excinfo:
        asyncio.run(wait_for_completion(source, WaitOptions(max_consecutive_errors=3)))

    assert source.calls == 3
    assert excinfo.value.max_consecutive_errors == 3
    assert excinfo.value.__cause__ is failure
    assert "3 consecutive" in str(excinfo.value)


def test_success_resets_error_counter(clock):
    source = ScriptedSource(
        [
            RuntimeError("a"),
            RuntimeError("b"),
            "running",
            RuntimeError("c"),
            RuntimeError("d"),
            "finished",
        ]
    )

    result = asyncio.run(wait_for_completion(source, WaitOptions(max_consecutive_errors=3)))

    assert result == "finished"
    assert source.calls == 6


def test_repeated_status_reported_once(clock):
    changes = []
    source = ScriptedSource(["running", "running", "running", "stuck"])

    asyncio.run(wait_for_completion(source, WaitOptions(on_status_change=changes.append)))

    assert changes == ["running", "stuck"]


def test_failure_is_logged(clock, caplog):
    source = ScriptedSource([RuntimeError("flaky"), "finished"])

    with caplog.at_level("WARNING", logger="prdriver.waiter"):
        asyncio.run(wait_for_completion(source))

    assert "Status check failed (1/5): flaky" in caplog.text
