"""FIFO queue that applies async mutations in bounded rounds."""

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

_logger = logging.getLogger(__name__)

Operation = Callable[[], Awaitable[object]]

DEFAULT_BATCH_SIZE = 10
DEFAULT_PAUSE_SECONDS = 0.01


class BatchQueueError(Exception):
    """Base error for batch queue failures."""


class QueueFullError(BatchQueueError):
    """Raised when the queue already holds ``max_pending`` operations."""


class QueueClosedError(BatchQueueError):
    """Raised for operations added to, or discarded by, a closed queue."""


class OperationStatus(str, Enum):
    """Outcome of a queued operation."""

    PENDING = "pending"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class QueueState(str, Enum):
    """Whether a drain loop is running."""

    IDLE = "idle"
    DRAINING = "draining"


@dataclass(eq=False)
class PendingOperation:
    """Record tracking a single queued operation until it settles."""

    operation: Operation
    status: OperationStatus = OperationStatus.PENDING
    result: object | None = None
    error: BaseException | None = None
    round_index: int | None = None
    _settled: asyncio.Event = field(default_factory=asyncio.Event, repr=False)
    _callbacks: list[Callable[["PendingOperation"], None]] = field(
        default_factory=list, repr=False
    )

    @property
    def done(self) -> bool:
        """Return True once the operation resolved or rejected."""
        return self.status is not OperationStatus.PENDING

    async def wait(self) -> object | None:
        """Wait for the operation, returning its result or raising its error."""
        await self._settled.wait()
        if self.error is not None:
            raise self.error
        return self.result

    def add_done_callback(self, callback: Callable[["PendingOperation"], None]) -> None:
        """Call ``callback`` once settled, immediately if already settled."""
        if self.done:
            callback(self)
            return
        self._callbacks.append(callback)

    def resolve(self, result: object | None) -> None:
        """Mark the operation as succeeded."""
        self.status = OperationStatus.RESOLVED
        self.result = result
        self._settle()

    def reject(self, error: BaseException) -> None:
        """Mark the operation as failed."""
        self.status = OperationStatus.REJECTED
        self.error = error
        self._settle()

    def _settle(self) -> None:
        self._settled.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback(self)
            except Exception:
                _logger.exception("Batch queue done-callback failed")


@dataclass
class BatchQueue:
    """In-memory FIFO of async mutations drained in bounded rounds.

    Each round takes up to ``batch_size`` operations from the head, runs them
    concurrently and waits for all of them to settle before pausing for
    ``pause_seconds``. A failure only rejects its own record. Operations are
    not persisted and are never retried.
    """

    batch_size: int = DEFAULT_BATCH_SIZE
    pause_seconds: float = DEFAULT_PAUSE_SECONDS
    max_pending: int | None = 1000
    rounds_completed: int = 0
    _queue: deque[PendingOperation] = field(default_factory=deque, repr=False)
    _drain_task: asyncio.Task[None] | None = field(default=None, repr=False)
    _closed: bool = field(default=False, repr=False)

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")

    @property
    def state(self) -> QueueState:
        """Return ``DRAINING`` while a drain loop is active."""
        if self._drain_task is not None and not self._drain_task.done():
            return QueueState.DRAINING
        return QueueState.IDLE

    @property
    def closed(self) -> bool:
        """Return True once ``close`` has been called."""
        return self._closed

    def __len__(self) -> int:
        return len(self._queue)

    def add(self, operation: Operation) -> PendingOperation:
        """Append an operation and start draining if idle.

        Must be called from a running event loop.
        """
        if self._closed:
            raise QueueClosedError("Batch queue is closed")
        if self.max_pending is not None and len(self._queue) >= self.max_pending:
            raise QueueFullError(
                f"Batch queue already holds {self.max_pending} operations"
            )
        pending = PendingOperation(operation)
        self._queue.append(pending)
        if self.state is QueueState.IDLE:
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())
        return pending

    async def submit(self, operation: Operation) -> object | None:
        """Queue an operation and wait for its outcome."""
        return await self.add(operation).wait()

    async def join(self) -> None:
        """Wait until the queue has drained."""
        while self._drain_task is not None and not self._drain_task.done():
            await asyncio.shield(self._drain_task)

    async def close(self, *, drain: bool = True) -> None:
        """Stop accepting operations and settle the ones already queued."""
        self._closed = True
        if not drain:
            discarded = 0
            while self._queue:
                self._queue.popleft().reject(
                    QueueClosedError("Batch queue closed before operation ran")
                )
                discarded += 1
            if discarded:
                _logger.warning("Batch queue closed: discarded=%s", discarded)
        await self.join()

    def stats(self) -> dict[str, object]:
        """Return queue counters."""
        return {
            "state": self.state.value,
            "queued": len(self._queue),
            "rounds_completed": self.rounds_completed,
            "batch_size": self.batch_size,
            "max_pending": self.max_pending,
            "closed": self._closed,
        }

    async def _drain(self) -> None:
        while self._queue:
            size = min(self.batch_size, len(self._queue))
            batch = [self._queue.popleft() for _ in range(size)]
            round_index = self.rounds_completed
            await asyncio.gather(
                *(self._run(pending, round_index) for pending in batch)
            )
            self.rounds_completed += 1
            await asyncio.sleep(self.pause_seconds)

    async def _run(self, pending: PendingOperation, round_index: int) -> None:
        pending.round_index = round_index
        try:
            result = await pending.operation()
        except asyncio.CancelledError as exc:
            pending.reject(exc)
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            _logger.warning("Batch operation cancelled itself (round=%s)", round_index)
            return
        except Exception as exc:
            _logger.warning(
                "Batch operation failed (round=%s): %s", round_index, exc
            )
            pending.reject(exc)
            return
        pending.resolve(result)
