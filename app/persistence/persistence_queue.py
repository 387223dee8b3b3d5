# app/persistence/persistence_queue.py
"""
Non-blocking persistence of store mutations.

Commands return as soon as the in-memory model changes. Their persistence
operations are queued here and written by a single background thread, in
submission order, so the repository never sees job N+1 before job N.

The worker owns its own asyncio event loop. Anything that talks to the
repository (startup load, health checks, disposal) runs on that loop via
``call`` so async drivers stay bound to one loop.
"""

import asyncio
import queue
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

from app.domain.commands import EntityKind, PersistenceOp
from app.domain.errors import PersistenceError
from common.config import PersistenceConfig
from common.logger import get_app_logger
from .repository import EntityRepository

logger = get_app_logger(__name__)

FailureListener = Callable[[str, list[PersistenceOp], PersistenceError], None]


@dataclass
class _WriteJob:
    label: str
    ops: list[PersistenceOp]
    future: "Future[Any]" = field(default_factory=Future)


@dataclass
class _CallJob:
    factory: Callable[[], Awaitable[Any]]
    future: "Future[Any]" = field(default_factory=Future)


_STOP = object()


class PersistenceQueue:
    """
    Background writer with bounded retries.

    A job that still fails after ``max_retries`` retries resolves its future
    with ``PersistenceError`` and notifies every failure listener. The store
    keeps the mutation either way.
    """

    def __init__(
        self,
        repository: EntityRepository,
        config: Optional[PersistenceConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._repository = repository
        self._config = config or PersistenceConfig()
        self._sleep = sleep
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=self._config.queue_size)
        self._worker_thread: Optional[threading.Thread] = None
        self._listeners: list[FailureListener] = []
        self._lock = threading.Lock()

        # Metrics
        self._total_jobs = 0
        self._failed_jobs = 0
        self._retries = 0
        self._total_write_time = 0.0

    @property
    def repository(self) -> EntityRepository:
        return self._repository

    def on_failure(self, listener: FailureListener) -> None:
        self._listeners.append(listener)

    # Worker ----------------------------------------------------------------

    def start(self) -> None:
        with self._lock:
            if self._worker_thread is not None and self._worker_thread.is_alive():
                return
            self._worker_thread = threading.Thread(
                target=self._run,
                daemon=True,
                name="PersistenceWorker",
            )
            self._worker_thread.start()
        logger.info(
            "Persistence worker started",
            max_retries=self._config.max_retries,
            queue_size=self._config.queue_size,
        )

    @property
    def is_running(self) -> bool:
        return self._worker_thread is not None and self._worker_thread.is_alive()

    def _run(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            while True:
                job = self._queue.get()
                try:
                    if job is _STOP:
                        break
                    if isinstance(job, _CallJob):
                        self._process_call(job, loop)
                    else:
                        self._process_write(job, loop)
                finally:
                    self._queue.task_done()
        finally:
            loop.close()

    def _process_call(self, job: _CallJob, loop: asyncio.AbstractEventLoop) -> None:
        try:
            result = loop.run_until_complete(job.factory())
        except Exception as e:
            job.future.set_exception(e)
        else:
            job.future.set_result(result)

    def _process_write(self, job: _WriteJob, loop: asyncio.AbstractEventLoop) -> None:
        attempts = self._config.max_retries + 1
        start_time = time.perf_counter()
        last_error: Optional[Exception] = None

        for attempt in range(attempts):
            try:
                loop.run_until_complete(self._repository.apply(job.ops))
            except Exception as e:
                last_error = e
                if attempt + 1 < attempts:
                    delay = self._config.retry_base_delay * (2**attempt)
                    self._retries += 1
                    logger.warning(
                        "Persistence job failed, retrying",
                        job=job.label,
                        attempt=attempt + 1,
                        delay_s=delay,
                        error=str(e),
                    )
                    self._sleep(delay)
                continue

            self._total_jobs += 1
            self._total_write_time += time.perf_counter() - start_time
            job.future.set_result(len(job.ops))
            return

        self._fail(job, PersistenceError(
            f"Could not persist '{job.label}' after {attempts} attempts",
            job=job.label,
            attempts=attempts,
            cause=str(last_error),
        ))

    def _fail(self, job: _WriteJob, error: PersistenceError) -> None:
        self._failed_jobs += 1
        logger.error("Persistence job failed", job=job.label, error=error.message)
        job.future.set_exception(error)
        for listener in list(self._listeners):
            try:
                listener(job.label, job.ops, error)
            except Exception as e:
                logger.error("Persistence failure listener raised", error=str(e))

    # Producers ---------------------------------------------------------------

    def submit(self, label: str, ops: list[PersistenceOp]) -> "Future[Any]":
        """Queue one command's operations. Never blocks the caller."""
        job = _WriteJob(label=label, ops=ops)
        try:
            self._queue.put_nowait(job)
        except queue.Full:
            self._fail(job, PersistenceError(
                "Persistence queue is full", job=label, queue_size=self._config.queue_size
            ))
        return job.future

    def call(self, factory: Callable[[], Awaitable[Any]]) -> "Future[Any]":
        """Run ``factory()`` on the worker loop after everything queued so far."""
        job = _CallJob(factory=factory)
        self._queue.put(job)
        return job.future

    async def fetch_all(self, kind: EntityKind) -> list[Any]:
        return await asyncio.wrap_future(self.call(lambda: self._repository.fetch_all(kind)))

    def drain(self) -> None:
        """Block until every queued job has been processed."""
        self._queue.join()

    def get_metrics(self) -> Dict[str, Any]:
        avg_write_time = self._total_write_time / self._total_jobs if self._total_jobs > 0 else 0

        return {
            "total_jobs": self._total_jobs,
            "failed_jobs": self._failed_jobs,
            "retries": self._retries,
            "queue_size": self._queue.qsize(),
            "avg_write_time_ms": avg_write_time * 1000,
            "worker_alive": self.is_running,
        }

    def shutdown(self, timeout: float = 5.0) -> None:
        """Write out queued jobs, close the repository and stop the worker."""
        if not self.is_running:
            return
        logger.info("Shutting down persistence worker", queue_size=self._queue.qsize())
        closed = self.call(self._repository.close)
        self._queue.put(_STOP)
        try:
            closed.result(timeout=timeout)
        except Exception as e:
            logger.error("Repository close failed", error=str(e))
        if self._worker_thread is not None:
            self._worker_thread.join(timeout=timeout)
        logger.info("Persistence worker stopped", **self.get_metrics())


__all__ = ["PersistenceQueue", "FailureListener"]
