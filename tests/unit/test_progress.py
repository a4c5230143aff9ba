"""Progress publisher tests."""

import asyncio

import pytest

from formchain.contracts import ChainCombinedResult
from formchain.progress import ProgressPublisher, compute_percent, get_publisher


def test_initial_state_is_idle():
    record = ProgressPublisher().state
    assert record.step == "idle"
    assert record.current == 0
    assert record.total == 0
    assert record.percent == 0


def test_compute_percent_rounds_halves_up():
    assert compute_percent(0, 0) == 0
    assert compute_percent(1, 8) == 13
    assert compute_percent(1, 3) == 33
    assert compute_percent(2, 3) == 67


def test_start_replaces_record_and_clears_error():
    publisher = ProgressPublisher()
    publisher.fail("boom")

    record = publisher.start("seo", {"title": "x"}, 2, 4)

    assert publisher.state is record
    assert record.step == "seo"
    assert record.percent == 50
    assert record.data == {"title": "x"}
    assert record.error is None
    assert record.ok is None


def test_running_step_never_reports_100():
    publisher = ProgressPublisher()
    assert publisher.start("publish", None, 4, 4).percent == 99
    assert publisher.start("initial").percent == 0


def test_complete_extracts_message_and_ok():
    publisher = ProgressPublisher()
    result = ChainCombinedResult(
        step="save", message="Completed 1 chained actions in 3ms."
    )

    record = publisher.complete(result)

    assert record.step == "complete"
    assert (record.current, record.total, record.percent) == (1, 1, 100)
    assert record.ok is True
    assert record.message == "Completed 1 chained actions in 3ms."
    assert record.data["step"] == "save"


def test_complete_without_final_defaults_ok():
    record = ProgressPublisher().complete()
    assert record.ok is True
    assert record.message is None
    assert record.data is None


def test_fail_attaches_error_verbatim():
    error = RuntimeError("nope")
    record = ProgressPublisher().fail(error)

    assert record.step == "error"
    assert record.percent == 100
    assert record.ok is False
    assert record.error is error


def test_subscribe_and_unsubscribe():
    publisher = ProgressPublisher()
    seen = []

    unsubscribe = publisher.subscribe(lambda record: seen.append(record.step))
    publisher.start("a", None, 1, 2)
    unsubscribe()
    publisher.start("b", None, 2, 2)

    assert seen == ["idle", "a"]


def test_failing_listener_does_not_block_writer():
    publisher = ProgressPublisher()
    seen = []

    def broken(record):
        if record.step != "idle":
            raise ValueError("listener bug")

    publisher.subscribe(broken)
    publisher.subscribe(lambda record: seen.append(record.step))
    publisher.start("a")

    assert publisher.state.step == "a"
    assert seen == ["idle", "a"]


@pytest.mark.asyncio
async def test_watch_yields_latest_state_until_terminal():
    publisher = ProgressPublisher()
    received = []

    async def reader():
        async for record in publisher.watch(lifespan=2, stop_on_terminal=True):
            received.append(record.step)

    task = asyncio.create_task(reader())
    await asyncio.sleep(0)
    publisher.start("a", None, 1, 2)
    publisher.start("b", None, 2, 2)
    publisher.complete()
    await task

    assert received[0] == "idle"
    assert received[-1] == "complete"
    assert "a" not in received


@pytest.mark.asyncio
async def test_watch_stops_after_lifespan():
    publisher = ProgressPublisher()
    received = [record async for record in publisher.watch(lifespan=0.05)]
    assert [r.step for r in received] == ["idle"]


def test_get_publisher_is_shared():
    assert get_publisher() is get_publisher()
