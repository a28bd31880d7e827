"""In-process outbox: bounded queue of named side-effect jobs with retry.

Jobs are zero-argument coroutine functions. A fixed pool of worker tasks
runs them; a failing job is retried with exponential backoff and dropped
(logged) once it exhausts its attempts. Failures never reach the code
that enqueued the job.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from plm.application.interfaces.services import OutboxJob
from plm.core.config import Settings
from plm.shared.enums import OutboxJobOutcome

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class OutboxStats:
    """Counters since start."""

    enqueued: int = 0
    refused: int = 0
    succeeded: int = 0
    exhausted: int = 0
    retries: int = 0


class InProcessOutbox:
    """asyncio.Queue-backed outbox. Implements IOutbox."""

    def __init__(
        self,
        *,
        workers: int = 2,
        max_size: int = 1000,
        max_attempts: int = 3,
        backoff_base_seconds: float = 0.5,
        backoff_max_seconds: float = 30.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._worker_count = workers
        self._max_attempts = max_attempts
        self._backoff_base = backoff_base_seconds
        self._backoff_max = backoff_max_seconds
        self._sleep = sleep
        self._queue: asyncio.Queue[tuple[str, OutboxJob]] = asyncio.Queue(maxsize=max_size)
        self._workers: list[asyncio.Task[None]] = []
        self._accepting = False
        self.stats = OutboxStats()

    @classmethod
    def from_settings(cls, settings: Settings) -> InProcessOutbox:
        return cls(
            workers=settings.outbox_workers,
            max_size=settings.outbox_max_size,
            max_attempts=settings.outbox_max_attempts,
            backoff_base_seconds=settings.outbox_backoff_base_seconds,
            backoff_max_seconds=settings.outbox_backoff_max_seconds,
        )

    @property
    def is_running(self) -> bool:
        return self._accepting

    @property
    def pending(self) -> int:
        """Jobs queued and not yet picked up by a worker."""
        return self._queue.qsize()

    def backoff_for(self, attempt: int) -> float:
        """Delay after failed attempt number attempt (1-based)."""
        return min(self._backoff_base * 2 ** (attempt - 1), self._backoff_max)

    def start(self) -> None:
        """Spawn the worker tasks. Call from the running event loop."""
        if self._accepting:
            return
        self._accepting = True
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"outbox-worker-{i}")
            for i in range(self._worker_count)
        ]
        logger.info("Outbox started with %d workers", self._worker_count)

    def enqueue(self, name: str, job: OutboxJob) -> bool:
        """Queue job; False (logged) when stopped or full."""
        if not self._accepting:
            logger.warning("Outbox stopped; refusing job %s", name)
            self.stats.refused += 1
            return False
        try:
            self._queue.put_nowait((name, job))
        except asyncio.QueueFull:
            logger.error("Outbox full (%d jobs); dropping job %s", self._queue.maxsize, name)
            self.stats.refused += 1
            return False
        self.stats.enqueued += 1
        return True

    async def drain(self, timeout: float | None = None) -> bool:
        """Wait until every queued job has finished. False on timeout."""
        try:
            await asyncio.wait_for(self._queue.join(), timeout)
        except TimeoutError:
            logger.warning("Outbox drain timed out with %d jobs queued", self._queue.qsize())
            return False
        return True

    async def stop(self, timeout: float | None = None) -> bool:
        """Stop accepting, drain, then cancel the workers. Returns the drain result."""
        self._accepting = False
        drained = await self.drain(timeout) if self._workers else True
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info(
            "Outbox stopped (succeeded=%d, exhausted=%d, refused=%d)",
            self.stats.succeeded,
            self.stats.exhausted,
            self.stats.refused,
        )
        return drained

    async def _worker(self, index: int) -> None:
        while True:
            name, job = await self._queue.get()
            try:
                await self._run(name, job)
            finally:
                self._queue.task_done()

    async def _run(self, name: str, job: OutboxJob) -> OutboxJobOutcome:
        attempt = 0
        while True:
            attempt += 1
            try:
                await job()
            except asyncio.CancelledError:
                raise
            except Exception:
                if attempt >= self._max_attempts:
                    logger.exception(
                        "Outbox job %s failed after %d attempts; dropping", name, attempt
                    )
                    self.stats.exhausted += 1
                    return OutboxJobOutcome.EXHAUSTED
                delay = self.backoff_for(attempt)
                logger.warning(
                    "Outbox job %s failed (attempt %d/%d); retrying in %.2fs",
                    name,
                    attempt,
                    self._max_attempts,
                    delay,
                    exc_info=True,
                )
                self.stats.retries += 1
                await self._sleep(delay)
            else:
                logger.debug("Outbox job %s succeeded (attempt %d)", name, attempt)
                self.stats.succeeded += 1
                return OutboxJobOutcome.SUCCEEDED
