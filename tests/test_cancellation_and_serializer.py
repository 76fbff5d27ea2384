from __future__ import annotations

import threading

import pytest

from oaiclient.cancellation import CancellableRequest, NoOpCancellableRequest, RequestState
from oaiclient.serializer import InlineExecutionSerializer, QueueExecutionSerializer


class _Resource:
    def __init__(self) -> None:
        self.closed = 0

    def close(self) -> None:
        self.closed += 1


def test_cancel_is_idempotent_and_closes_bound_resource_once() -> None:
    reports: list[bool] = []
    handle = CancellableRequest(on_cancel=reports.append)
    resource = _Resource()
    handle.bind(resource)

    assert handle.cancel() is True
    assert handle.cancel() is False
    assert handle.cancel(report=True) is False
    assert handle.state is RequestState.CANCELLED
    assert resource.closed == 1
    assert reports == [False]


def test_cancel_after_complete_is_a_no_op() -> None:
    reports: list[bool] = []
    handle = CancellableRequest(on_cancel=reports.append)
    assert handle.complete() is True
    assert handle.cancel() is False
    assert handle.state is RequestState.COMPLETED
    assert reports == []


def test_bind_after_cancel_closes_resource_immediately() -> None:
    handle = CancellableRequest()
    handle.cancel()
    resource = _Resource()
    handle.bind(resource)
    assert resource.closed == 1

    cancelled: list[bool] = []
    handle.bind_future(lambda: cancelled.append(True))
    assert cancelled == [True]


def test_concurrent_cancel_performs_exactly_one_transition() -> None:
    handle = CancellableRequest()
    start = threading.Barrier(8)
    wins: list[bool] = []
    lock = threading.Lock()

    def worker() -> None:
        start.wait()
        won = handle.cancel()
        with lock:
            wins.append(won)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert wins.count(True) == 1


def test_no_op_handle_is_already_complete() -> None:
    handle = NoOpCancellableRequest()
    assert not handle.is_active
    assert handle.cancel() is False


def test_queue_serializer_runs_work_in_submission_order() -> None:
    serializer = QueueExecutionSerializer(name="test-serializer")
    seen: list[int] = []
    threads: set[str] = set()

    def make(i: int):
        def work() -> None:
            seen.append(i)
            threads.add(threading.current_thread().name)

        return work

    try:
        for i in range(100):
            serializer.submit(make(i))
        assert serializer.flush(timeout=5)
        assert seen == list(range(100))
        assert threads == {"test-serializer"}
    finally:
        serializer.shutdown()


def test_queue_serializer_drops_work_of_cancelled_owner() -> None:
    serializer = QueueExecutionSerializer(name="test-serializer")
    gate = threading.Event()
    handle = CancellableRequest()
    seen: list[str] = []
    try:
        serializer.submit(gate.wait)
        serializer.submit(lambda: seen.append("owned"), owner=handle)
        serializer.submit(lambda: seen.append("unowned"))
        handle.cancel()
        gate.set()
        assert serializer.flush(timeout=5)
        assert seen == ["unowned"]
    finally:
        serializer.shutdown()


def test_callback_exception_does_not_stop_delivery(caplog: pytest.LogCaptureFixture) -> None:
    serializer = QueueExecutionSerializer(name="test-serializer")
    seen: list[int] = []

    def boom() -> None:
        raise RuntimeError("callback failed")

    try:
        serializer.submit(boom)
        serializer.submit(lambda: seen.append(1))
        assert serializer.flush(timeout=5)
        assert seen == [1]
        assert "Result callback raised" in caplog.text
    finally:
        serializer.shutdown()


def test_submit_after_shutdown_raises() -> None:
    serializer = QueueExecutionSerializer(name="test-serializer")
    serializer.shutdown()
    with pytest.raises(RuntimeError):
        serializer.submit(lambda: None)


def test_inline_serializer_skips_cancelled_owner() -> None:
    serializer = InlineExecutionSerializer()
    handle = CancellableRequest()
    seen: list[str] = []
    serializer.submit(lambda: seen.append("a"), owner=handle)
    handle.cancel()
    serializer.submit(lambda: seen.append("b"), owner=handle)
    assert seen == ["a"]
