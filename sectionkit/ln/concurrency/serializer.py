"""MutationSerializer - one-at-a-time FIFO execution of (mutate, notify) pairs."""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Callable
from enum import Enum
from typing import Any

import anyio
import anyio.to_thread

from sectionkit._errors import MutationError, SerializerClosedError
from sectionkit.config import settings

from .utils import callable_name, is_coro_func

__all__ = ("OperationStatus", "PendingOperation", "MutationSerializer")

logger = logging.getLogger(__name__)


def _noop() -> None:
    pass


class OperationStatus(str, Enum):
    """Lifecycle of a queued operation.

    Attributes:
        PENDING: Enqueued, not started.
        PROCESSING: Mutate or notify is running.
        COMPLETED: Both steps finished.
        FAILED: A step raised; the error is kept on the operation.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PendingOperation:
    """A queued ``(mutate, notify)`` pair.

    Attributes:
        mutate (Callable[[], Any]): Synchronous state change.
        notify (Callable[[], Any] | None): Runs after ``mutate`` in the
            notification context; may be a coroutine function.
        label (str | None): Name used in logs.
        status (OperationStatus): Current lifecycle state.
        error (MutationError | None): Set when a step raised.
        duration (float | None): Seconds spent executing both steps.
    """

    __slots__ = ("mutate", "notify", "label", "status", "error", "duration")

    def __init__(
        self,
        mutate: Callable[[], Any],
        notify: Callable[[], Any] | None = None,
        *,
        label: str | None = None,
    ) -> None:
        self.mutate = mutate
        self.notify = notify
        self.label = label or callable_name(mutate)
        self.status = OperationStatus.PENDING
        self.error: MutationError | None = None
        self.duration: float | None = None

    @property
    def done(self) -> bool:
        return self.status in (OperationStatus.COMPLETED, OperationStatus.FAILED)

    def __repr__(self) -> str:
        return f"PendingOperation(label={self.label!r}, status={self.status.value})"


class MutationSerializer:
    """Serial FIFO pipeline for mutations and their notifications.

    ``enqueue`` is synchronous and returns immediately. The drain loop
    (``run``) pops the head pair, runs ``mutate`` (on a worker thread when
    ``offload`` is set), then runs ``notify`` in the drain task, then moves
    on. At most one pair is in flight, and a pair's notify finishes before
    the next pair's mutate starts. An operation that has started is
    shielded from cancellation so its two steps always complete together.

    Work may be enqueued before the drain loop starts; it is buffered and
    drained once ``run`` or ``drain`` is awaited.

    Usage:
        ```python
        serializer = MutationSerializer()
        async with anyio.create_task_group() as tg:
            await tg.start(serializer.run)
            serializer.enqueue(lambda: state.append(1), lambda: print(state))
            await serializer.settled()
            serializer.stop()
        ```

    Note:
        Failures never stop the pipeline: a step that raises is logged,
        its operation is marked failed, and the next pair runs.
    """

    def __init__(self, *, offload: bool | None = None, name: str | None = None):
        self.offload = (
            settings.SECTIONKIT_OFFLOAD_MUTATIONS if offload is None else offload
        )
        self.name = name or f"{type(self).__name__}-{id(self):x}"
        self._pending: deque[PendingOperation] = deque()
        self._wakeup: anyio.Event | None = None
        self._lock: anyio.Lock | None = None
        self._running = False
        self._executing = False
        self._stop_requested = False
        self._closed = False

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def is_running(self) -> bool:
        """True while the drain loop is active."""
        return self._running

    @property
    def is_executing(self) -> bool:
        """True while a pair is in flight."""
        return self._executing

    @property
    def closed(self) -> bool:
        return self._closed

    def enqueue(
        self,
        mutate: Callable[[], Any],
        notify: Callable[[], Any] | None = None,
        *,
        label: str | None = None,
    ) -> PendingOperation:
        """Append a ``(mutate, notify)`` pair to the FIFO.

        Raises:
            SerializerClosedError: If ``close`` was called.
        """
        if self._closed:
            raise SerializerClosedError(details={"serializer": self.name})
        operation = PendingOperation(mutate, notify, label=label)
        self._pending.append(operation)
        logger.debug(
            f"{self.name}: enqueued {operation.label} "
            f"({len(self._pending)} pending)"
        )
        if self._wakeup is not None:
            self._wakeup.set()
        return operation

    def run_after_drain(
        self, block: Callable[[], Any], *, label: str = "drain-barrier"
    ) -> PendingOperation:
        """Run ``block`` once everything enqueued before it has committed."""
        return self.enqueue(_noop, block, label=label)

    async def settled(self) -> None:
        """Wait until every operation enqueued so far has been delivered."""
        if self._running and not self._closed:
            done = anyio.Event()
            self.run_after_drain(done.set, label="settled")
            await done.wait()
        else:
            await self.drain()

    async def drain(self) -> None:
        """Execute every pending operation inline, in FIFO order."""
        if self._lock is None:
            self._lock = anyio.Lock()
        async with self._lock:
            while self._pending:
                operation = self._pending.popleft()
                with anyio.CancelScope(shield=True):
                    await self._execute(operation)

    async def run(self, *, task_status=anyio.TASK_STATUS_IGNORED) -> None:
        """Drain loop. Returns after ``stop``/``close`` once the FIFO is empty."""
        if self._running:
            raise RuntimeError(f"{self.name} is already running")
        self._running = True
        self._stop_requested = False
        logger.debug(f"{self.name}: drain loop started")
        task_status.started()
        try:
            while True:
                await self.drain()
                if self._stop_requested or self._closed:
                    break
                self._wakeup = anyio.Event()
                if self._pending:
                    continue
                await self._wakeup.wait()
        finally:
            self._running = False
            self._wakeup = None
            logger.debug(f"{self.name}: drain loop stopped")

    def stop(self) -> None:
        """Ask the drain loop to finish pending work and return."""
        self._stop_requested = True
        if self._wakeup is not None:
            self._wakeup.set()

    def close(self) -> None:
        """Stop the drain loop and reject further work."""
        self._closed = True
        self.stop()

    async def _execute(self, operation: PendingOperation) -> None:
        operation.status = OperationStatus.PROCESSING
        self._executing = True
        start = time.perf_counter()
        try:
            try:
                if self.offload:
                    await anyio.to_thread.run_sync(operation.mutate)
                else:
                    operation.mutate()
            except Exception as e:
                self._fail(operation, e, "mutate")
                return

            if operation.notify is not None:
                try:
                    if is_coro_func(operation.notify):
                        await operation.notify()
                    else:
                        operation.notify()
                except Exception as e:
                    self._fail(operation, e, "notify")
                    return

            operation.status = OperationStatus.COMPLETED
        finally:
            operation.duration = time.perf_counter() - start
            self._executing = False

    def _fail(self, operation: PendingOperation, exc: Exception, step: str) -> None:
        operation.status = OperationStatus.FAILED
        operation.error = MutationError.from_exception(exc, label=operation.label)
        logger.error(
            f"{self.name}: {step} of {operation.label} failed: {exc}",
            exc_info=True,
        )
