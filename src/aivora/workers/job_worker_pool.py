"""Bounded asyncio worker pool for detached generation jobs."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from ..generation.generation_errors import QueueFullError

logger = logging.getLogger(__name__)

JobHandler = Callable[[str], Awaitable[None]]


class JobWorkerPool:
    """Fixed set of worker tasks draining a bounded queue of job ids.

    ``submit`` never blocks: a full queue or a stopped pool raises
    :class:`QueueFullError`. Handler exceptions are logged and the worker
    moves on to the next job.
    """

    def __init__(
        self,
        handler: JobHandler,
        *,
        worker_count: int = 4,
        max_queue_size: int = 64,
        name: str = "aivora-worker",
    ) -> None:
        if worker_count <= 0:
            raise ValueError("worker_count must be positive")
        if max_queue_size <= 0:
            raise ValueError("max_queue_size must be positive")
        self._handler = handler
        self._worker_count = worker_count
        self._max_queue_size = max_queue_size
        self._name = name
        self._queue: asyncio.Queue[str] | None = None
        self._tasks: list[asyncio.Task[None]] = []
        self._accepting = False

    @property
    def accepting(self) -> bool:
        return self._accepting

    @property
    def queued(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    def start(self) -> None:
        if self._tasks:
            return
        self._queue = asyncio.Queue(maxsize=self._max_queue_size)
        self._tasks = [
            asyncio.create_task(self._run(index), name=f"{self._name}-{index}")
            for index in range(self._worker_count)
        ]
        self._accepting = True
        logger.info(
            "workers.started",
            extra={"worker_count": self._worker_count, "max_queue_size": self._max_queue_size},
        )

    def ensure_capacity(self) -> None:
        """Raise :class:`QueueFullError` unless another job can be queued."""
        if not self._accepting or self._queue is None:
            raise QueueFullError("Worker pool is not accepting jobs")
        if self._queue.full():
            raise QueueFullError("Generation queue is full, try again later")

    def submit(self, job_id: str) -> None:
        self.ensure_capacity()
        assert self._queue is not None
        try:
            self._queue.put_nowait(job_id)
        except asyncio.QueueFull:
            raise QueueFullError("Generation queue is full, try again later") from None
        logger.debug("workers.job.queued", extra={"job_id": job_id, "queued": self.queued})

    async def stop(self, *, drain_timeout: float = 30.0) -> None:
        """Stop accepting work, let queued jobs finish, then cancel workers."""
        self._accepting = False
        if self._queue is not None and self._tasks:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=drain_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "workers.drain.timeout",
                    extra={"remaining": self.queued, "drain_timeout": drain_timeout},
                )
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks = []
        self._queue = None
        logger.info("workers.stopped")

    async def _run(self, index: int) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            job_id = await queue.get()
            try:
                await self._handler(job_id)
            except Exception:  # noqa: BLE001
                logger.exception(
                    "workers.job.crashed", extra={"job_id": job_id, "worker": index}
                )
            finally:
                queue.task_done()
