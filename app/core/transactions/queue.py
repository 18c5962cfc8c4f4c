"""
Deployment Queue

Accepts validated deployment requests, hands back a job id immediately and
runs the pipeline later, either when ``process`` is called directly or from
the background drain loop. High-priority jobs go first; within a priority
jobs run in arrival order. A job id never has more than one active run.

Request payloads (including image bytes) stay in process memory; only the
job status is written to the key-value store so any replica can answer
status polls.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import TYPE_CHECKING, Any, Deque, Dict, Optional, Set

from ..deployment.errors import ErrorInfo, ErrorKind
from ..deployment.executor import new_transaction_id
from ..deployment.models import DeploymentRequest
from ..deployment.result import Err, Ok, Result
from .models import JobPriority, JobState, QueuedJob

if TYPE_CHECKING:
    from ...providers.base import KeyValueStore
    from ..deployment.pipeline import DeploymentPipeline

logger = logging.getLogger(__name__)


def job_key(job_id: str) -> str:
    return f"queue:deploy:job:{job_id}"


class DeploymentQueue:
    def __init__(
        self,
        pipeline: "DeploymentPipeline",
        store: "KeyValueStore",
        *,
        max_size: int = 1000,
        job_ttl_seconds: int = 86400,
        drain_interval_seconds: float = 5.0,
    ) -> None:
        self._pipeline = pipeline
        self._store = store
        self._max_size = max_size
        self._job_ttl = job_ttl_seconds
        self._drain_interval = drain_interval_seconds

        self._pending: Dict[JobPriority, Deque[str]] = {
            JobPriority.HIGH: deque(),
            JobPriority.NORMAL: deque(),
        }
        self._payloads: Dict[str, DeploymentRequest] = {}
        self._jobs: Dict[str, QueuedJob] = {}
        self._active: Set[str] = set()

        self._wakeup = asyncio.Event()
        self._lock = asyncio.Lock()
        self._loop_task: Optional[asyncio.Task] = None
        self._running = False

    # ---------------------------
    # Enqueue and status
    # ---------------------------
    @property
    def pending_count(self) -> int:
        return sum(len(ids) for ids in self._pending.values())

    async def enqueue(
        self,
        request: DeploymentRequest,
        metadata: Optional[Dict[str, Any]] = None,
        priority: JobPriority = JobPriority.NORMAL,
    ) -> Result[str, ErrorInfo]:
        if self.pending_count >= self._max_size:
            logger.warning("Deployment queue full (%d pending)", self.pending_count)
            return Err(
                ErrorInfo(
                    kind=ErrorKind.QUEUE_ERROR,
                    message="Deployment queue is full",
                    user_message="Too many deployments in progress. Please try again shortly.",
                )
            )

        job = QueuedJob(job_id=new_transaction_id(), priority=priority, metadata=dict(metadata or {}))
        try:
            await self._store.set(job_key(job.job_id), job.to_dict(), self._job_ttl)
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to enqueue deployment: %s", exc, exc_info=True)
            return Err(
                ErrorInfo(
                    kind=ErrorKind.QUEUE_ERROR,
                    message="Failed to queue deployment",
                    cause=f"{type(exc).__name__}: {exc}",
                    user_message="Unable to queue your deployment. Please try again.",
                )
            )

        self._jobs[job.job_id] = job
        self._payloads[job.job_id] = request
        self._pending[priority].append(job.job_id)
        self._wakeup.set()
        logger.info("Queued deployment %s for %s (%s priority)", job.job_id, request.symbol, priority.value)
        return Ok(job.job_id)

    async def get_status(self, job_id: str) -> Optional[Dict[str, Any]]:
        job = self._jobs.get(job_id)
        if job is not None:
            return job.to_dict()
        stored = await self._store.get(job_key(job_id))
        return stored if isinstance(stored, dict) else None

    # ---------------------------
    # Processing
    # ---------------------------
    async def process(self, job_id: str) -> Optional[QueuedJob]:
        """Run one job. Returns the finished job, or None if it was not runnable.

        Never raises; failures end up in the job's ``failed`` state.
        """
        async with self._lock:
            if job_id in self._active:
                logger.info("Deployment %s is already being processed", job_id)
                return None
            job = self._jobs.get(job_id)
            request = self._payloads.get(job_id)
            if job is None or request is None or job.state.is_final:
                return None
            self._active.add(job_id)
            for ids in self._pending.values():
                if job_id in ids:
                    ids.remove(job_id)

        try:
            job.transition(JobState.PROCESSING)
            await self._save(job)

            try:
                result = await self._pipeline.run(request, transaction_id=job_id)
            except asyncio.CancelledError:
                logger.warning("Queued deployment %s was cancelled", job_id)
                interrupted = ErrorInfo(
                    kind=ErrorKind.UNKNOWN_ERROR,
                    message="Deployment was interrupted",
                    user_message="Deployment was interrupted. Check your tokens before retrying.",
                )
                job.error = {"message": interrupted.message, **interrupted.to_error_details()}
                job.transition(JobState.FAILED)
                await self._save(job)
                raise
            except Exception as exc:  # noqa: BLE001
                logger.error("Queued deployment %s crashed: %s", job_id, exc, exc_info=True)
                result = Err(
                    ErrorInfo(
                        kind=ErrorKind.UNKNOWN_ERROR,
                        message="An unexpected error occurred",
                        details=str(exc),
                    )
                )

            if isinstance(result, Ok):
                job.result = result.value.to_dict()
                job.transition(JobState.COMPLETED)
                logger.info("Queued deployment %s completed", job_id)
            else:
                job.error = {"message": result.error.message, **result.error.to_error_details()}
                job.transition(JobState.FAILED)
                logger.warning("Queued deployment %s failed: %s", job_id, result.error.message)

            await self._save(job)
            return job
        finally:
            self._active.discard(job_id)
            self._payloads.pop(job_id, None)
            if job.state.is_final:
                self._jobs.pop(job_id, None)

    async def drain(self) -> int:
        """Process pending jobs until the queue is empty. Returns the number run."""
        processed = 0
        while True:
            job_id = self._next_job_id()
            if job_id is None:
                return processed
            if await self.process(job_id) is not None:
                processed += 1

    def _next_job_id(self) -> Optional[str]:
        for priority in (JobPriority.HIGH, JobPriority.NORMAL):
            if self._pending[priority]:
                return self._pending[priority].popleft()
        return None

    async def _save(self, job: QueuedJob) -> None:
        try:
            await self._store.set(job_key(job.job_id), job.to_dict(), self._job_ttl)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to persist status of %s: %s", job.job_id, exc, exc_info=True)

    # ---------------------------
    # Lifecycle
    # ---------------------------
    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        logger.info("Deployment queue worker starting")
        self._loop_task = asyncio.create_task(self._run_loop(), name="deployment-queue-loop")

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        logger.info("Deployment queue worker stopping")
        if self._loop_task:
            self._wakeup.set()
            try:
                # Let an in-flight deployment finish rather than abandon a broadcast
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def _run_loop(self) -> None:
        try:
            while self._running:
                self._wakeup.clear()
                await self.drain()
                if not self._running:
                    break
                try:
                    await asyncio.wait_for(self._wakeup.wait(), timeout=self._drain_interval)
                except asyncio.TimeoutError:
                    pass
        except asyncio.CancelledError:
            return
        except Exception as exc:  # noqa: BLE001
            logger.error("Deployment queue loop crashed: %s", exc, exc_info=True)
            self._running = False


__all__ = ["DeploymentQueue", "job_key"]
