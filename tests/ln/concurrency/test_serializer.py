# Copyright (c) 2023-2025, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

"""Tests for MutationSerializer: FIFO order, pairing, barriers and failures."""

import logging
import threading

import anyio
import pytest

from sectionkit._errors import MutationError, SerializerClosedError
from sectionkit.ln.concurrency.serializer import (
    MutationSerializer,
    OperationStatus,
    PendingOperation,
)


@pytest.fixture
def serializer():
    return MutationSerializer(offload=False)


class TestPendingOperation:
    def test_defaults(self):
        def mutate():
            pass

        op = PendingOperation(mutate)
        assert op.status is OperationStatus.PENDING
        assert op.notify is None
        assert op.error is None
        assert op.duration is None
        assert not op.done
        assert "mutate" in op.label

    def test_explicit_label(self):
        op = PendingOperation(lambda: None, label="append")
        assert repr(op) == "PendingOperation(label='append', status=pending)"


class TestEnqueue:
    def test_enqueue_returns_immediately(self, serializer):
        state = []
        op = serializer.enqueue(lambda: state.append(1))
        assert state == []
        assert serializer.pending_count == 1
        assert op.status is OperationStatus.PENDING

    def test_closed_serializer_rejects_work(self, serializer):
        serializer.close()
        assert serializer.closed
        with pytest.raises(SerializerClosedError):
            serializer.enqueue(lambda: None)


class TestDrain:
    @pytest.mark.anyio
    async def test_fifo_and_pairing(self, serializer):
        trace = []
        for i in range(5):
            serializer.enqueue(
                lambda i=i: trace.append(("mutate", i)),
                lambda i=i: trace.append(("notify", i)),
            )
        await serializer.drain()
        expected = []
        for i in range(5):
            expected += [("mutate", i), ("notify", i)]
        assert trace == expected
        assert serializer.pending_count == 0

    @pytest.mark.anyio
    async def test_work_enqueued_from_notify_runs_after(self, serializer):
        trace = []

        def first_notify():
            trace.append("notify-1")
            serializer.enqueue(lambda: trace.append("mutate-3"))

        serializer.enqueue(lambda: trace.append("mutate-1"), first_notify)
        serializer.enqueue(lambda: trace.append("mutate-2"))
        await serializer.settled()
        assert trace == ["mutate-1", "notify-1", "mutate-2", "mutate-3"]

    @pytest.mark.anyio
    async def test_async_notify_awaited(self, serializer):
        trace = []

        async def notify():
            await anyio.sleep(0)
            trace.append("notify")

        serializer.enqueue(lambda: trace.append("mutate"), notify)
        serializer.enqueue(lambda: trace.append("next"))
        await serializer.drain()
        assert trace == ["mutate", "notify", "next"]

    @pytest.mark.anyio
    async def test_status_and_duration(self, serializer):
        op = serializer.enqueue(lambda: None, lambda: None)
        await serializer.drain()
        assert op.status is OperationStatus.COMPLETED
        assert op.done
        assert op.duration is not None and op.duration >= 0


class TestFailures:
    @pytest.mark.anyio
    async def test_failing_mutate_skips_notify_and_continues(
        self, serializer, caplog
    ):
        trace = []

        def bad():
            raise ValueError("bad mutate")

        failed = serializer.enqueue(bad, lambda: trace.append("never"), label="bad")
        ok = serializer.enqueue(lambda: trace.append("ok"))
        with caplog.at_level(logging.ERROR):
            await serializer.drain()

        assert trace == ["ok"]
        assert failed.status is OperationStatus.FAILED
        assert isinstance(failed.error, MutationError)
        assert failed.error.details == {"type": "ValueError", "operation": "bad"}
        assert isinstance(failed.error.__cause__, ValueError)
        assert ok.status is OperationStatus.COMPLETED
        assert "bad mutate" in caplog.text

    @pytest.mark.anyio
    async def test_failing_notify_marks_failed(self, serializer):
        def bad_notify():
            raise RuntimeError("bad notify")

        op = serializer.enqueue(lambda: None, bad_notify)
        after = serializer.enqueue(lambda: None)
        await serializer.drain()
        assert op.status is OperationStatus.FAILED
        assert after.status is OperationStatus.COMPLETED


class TestRunLoop:
    @pytest.mark.anyio
    async def test_background_loop_drains_and_stops(self, serializer):
        state = []
        async with anyio.create_task_group() as tg:
            await tg.start(serializer.run)
            assert serializer.is_running
            for i in range(10):
                serializer.enqueue(lambda i=i: state.append(i))
            await serializer.settled()
            assert state == list(range(10))
            serializer.stop()
        assert not serializer.is_running

    @pytest.mark.anyio
    async def test_work_buffered_before_start(self, serializer):
        state = []
        serializer.enqueue(lambda: state.append("early"))
        async with anyio.create_task_group() as tg:
            await tg.start(serializer.run)
            await serializer.settled()
            serializer.stop()
        assert state == ["early"]

    @pytest.mark.anyio
    async def test_stop_drains_remaining_work(self, serializer):
        state = []
        async with anyio.create_task_group() as tg:
            await tg.start(serializer.run)
            for i in range(3):
                serializer.enqueue(lambda i=i: state.append(i))
            serializer.stop()
        assert state == [0, 1, 2]

    @pytest.mark.anyio
    async def test_run_twice_rejected(self, serializer):
        async with anyio.create_task_group() as tg:
            await tg.start(serializer.run)
            with pytest.raises(RuntimeError):
                await serializer.run()
            serializer.stop()

    @pytest.mark.anyio
    async def test_run_after_drain_sees_prior_mutations(self, serializer):
        state = []
        seen = []
        async with anyio.create_task_group() as tg:
            await tg.start(serializer.run)
            for i in range(4):
                serializer.enqueue(lambda i=i: state.append(i))
            serializer.run_after_drain(lambda: seen.append(list(state)))
            serializer.enqueue(lambda: state.append("late"))
            await serializer.settled()
            serializer.stop()
        assert seen == [[0, 1, 2, 3]]


class TestOffload:
    @pytest.mark.anyio
    async def test_mutate_on_worker_thread_notify_in_loop(self):
        serializer = MutationSerializer(offload=True)
        loop_thread = threading.get_ident()
        threads = {}

        serializer.enqueue(
            lambda: threads.setdefault("mutate", threading.get_ident()),
            lambda: threads.setdefault("notify", threading.get_ident()),
        )
        await serializer.drain()
        assert threads["mutate"] != loop_thread
        assert threads["notify"] == loop_thread

    @pytest.mark.anyio
    async def test_offloaded_order_preserved(self):
        serializer = MutationSerializer(offload=True)
        trace = []
        for i in range(20):
            serializer.enqueue(
                lambda i=i: trace.append(("m", i)),
                lambda i=i: trace.append(("n", i)),
            )
        async with anyio.create_task_group() as tg:
            await tg.start(serializer.run)
            await serializer.settled()
            serializer.stop()
        assert trace == [(k, i) for i in range(20) for k in ("m", "n")]
