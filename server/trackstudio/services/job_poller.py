"""Bounded polling of asynchronous orchestrator jobs.

Image (re)generation is fire-and-forget on the orchestrator: the trigger
call returns immediately and completion is only observable by re-reading
the resource. ``JobPoller`` re-reads it on a fixed interval until a
completion predicate holds or a timeout elapses, and reports the outcome
through the notification center.
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from trackstudio.config import settings
from trackstudio.models.jobs import PollJobStatus, PollStatus
from trackstudio.services.notifications import NotificationCenter, notification_center

logger = logging.getLogger(__name__)

FetchStatus = Callable[[str], Awaitable[Any]]
FetchStates = Callable[[list[str]], Awaitable[Mapping[str, Any]]]
Predicate = Callable[[Any], bool]
OnComplete = Callable[["PollJob"], None]


class CancellationToken:
    """Cooperative cancellation flag shared between a poll and its owner."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def sleep(self, delay: float) -> bool:
        """Sleep for ``delay`` seconds; return True if cancelled meanwhile."""
        if self.cancelled:
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=max(0.0, delay))
        except asyncio.TimeoutError:
            return False
        return True


@dataclass
class PollJob:
    job_id: str
    interval: float
    timeout: float
    is_complete: Predicate
    member_ids: list[str] = field(default_factory=list)
    token: CancellationToken = field(default_factory=CancellationToken)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None
    status: PollStatus = "pending"
    attempts: int = 0
    last_state: Any = None

    @property
    def active(self) -> bool:
        return self.status in ("pending", "polling")

    def to_status(self) -> PollJobStatus:
        return PollJobStatus(
            job_id=self.job_id,
            status=self.status,
            started_at=self.started_at,
            finished_at=self.finished_at,
            interval=self.interval,
            timeout=self.timeout,
            attempts=self.attempts,
            member_ids=self.member_ids,
        )


Message = str | Callable[[PollJob], str] | None


def _render(message: Message, job: PollJob) -> str | None:
    if callable(message):
        return message(job)
    return message


class JobPoller:
    """Runs independent polling loops, one asyncio task per job.

    The set of job ids currently being polled is exposed as ``in_progress``
    so views can show a busy indicator per image. Finished jobs stay
    queryable for ``retention`` seconds and are then forgotten.
    """

    def __init__(
        self,
        notifications: NotificationCenter | None = None,
        interval: float | None = None,
        timeout: float | None = None,
        batch_timeout: float | None = None,
        retention: float | None = None,
    ) -> None:
        self.notifications = notifications or notification_center
        self.interval = settings.poll_interval_seconds if interval is None else interval
        self.timeout = settings.image_poll_timeout_seconds if timeout is None else timeout
        self.batch_timeout = (
            settings.batch_poll_timeout_seconds if batch_timeout is None else batch_timeout
        )
        self.retention = settings.job_retention_seconds if retention is None else retention
        self._jobs: dict[str, PollJob] = {}
        self._tasks: dict[str, asyncio.Task[PollJob]] = {}
        self._expiry: dict[str, asyncio.TimerHandle] = {}

    # ── State ────────────────────────────────────────────────────────────

    @property
    def in_progress(self) -> frozenset[str]:
        ids: set[str] = set()
        for job in self._jobs.values():
            if job.active:
                ids.update(job.member_ids)
        return frozenset(ids)

    def is_polling(self, job_id: str | int) -> bool:
        return str(job_id) in self.in_progress

    def get(self, job_id: str | int) -> PollJob | None:
        return self._jobs.get(str(job_id))

    def jobs(self) -> list[PollJob]:
        return list(self._jobs.values())

    def _register(
        self,
        job_id: str,
        is_complete: Predicate,
        interval: float | None,
        timeout: float | None,
        token: CancellationToken | None,
        member_ids: list[str] | None = None,
    ) -> tuple[PollJob, bool]:
        existing = self._jobs.get(job_id)
        if existing is not None and existing.active:
            return existing, False

        job = PollJob(
            job_id=job_id,
            interval=self.interval if interval is None else interval,
            timeout=self.timeout if timeout is None else timeout,
            is_complete=is_complete,
            member_ids=member_ids or [job_id],
            token=token or CancellationToken(),
        )
        self._jobs[job_id] = job
        pending = self._expiry.pop(job_id, None)
        if pending is not None:
            pending.cancel()
        logger.info(
            "Polling job %s every %.1fs (timeout %.0fs)", job_id, job.interval, job.timeout,
        )
        return job, True

    def _finish(self, job: PollJob, status: PollStatus) -> PollJob:
        job.status = status
        job.finished_at = datetime.now(timezone.utc)
        logger.info(
            "Job %s finished as %s after %d polls", job.job_id, status, job.attempts,
        )
        loop = asyncio.get_running_loop()
        self._expiry[job.job_id] = loop.call_later(self.retention, self._forget, job)
        return job

    def _forget(self, job: PollJob) -> None:
        # A restarted job under the same id replaces this one
        if self._jobs.get(job.job_id) is job:
            del self._jobs[job.job_id]
            self._expiry.pop(job.job_id, None)

    # ── Polling loop ─────────────────────────────────────────────────────

    async def _run(
        self,
        job: PollJob,
        fetch_status: FetchStatus,
        success_message: Message,
        timeout_message: Message,
        on_complete: OnComplete | None = None,
    ) -> PollJob:
        loop = asyncio.get_running_loop()
        token = job.token
        job.status = "polling"

        started = loop.time()
        deadline = started + job.timeout
        next_fetch = started + job.interval

        try:
            while True:
                wake_at = min(next_fetch, deadline)
                if await token.sleep(wake_at - loop.time()):
                    return self._finish(job, "cancelled")

                # Timers may fire a clock tick early, so go by what we woke for
                if wake_at >= deadline or loop.time() >= deadline:
                    self._finish(job, "timed_out")
                    message = _render(timeout_message, job)
                    if message:
                        self.notifications.warning(message)
                    return job

                job.attempts += 1
                fetch_started = loop.time()
                try:
                    state = await fetch_status(job.job_id)
                    done = job.is_complete(state)
                except Exception:
                    logger.warning(
                        "Poll %d for job %s failed; retrying",
                        job.attempts, job.job_id, exc_info=True,
                    )
                    state, done = None, False
                else:
                    job.last_state = state

                # The owner may have gone away while the fetch was in flight
                if token.cancelled:
                    return self._finish(job, "cancelled")

                if done:
                    self._finish(job, "completed")
                    if on_complete is not None:
                        on_complete(job)
                    message = _render(success_message, job)
                    if message:
                        self.notifications.success(message)
                    return job

                # Never overlap fetches: a slow fetch pushes the next one back
                next_fetch = max(fetch_started + job.interval, loop.time())
        except asyncio.CancelledError:
            self._finish(job, "cancelled")
            raise

    async def poll(
        self,
        job_id: str | int,
        fetch_status: FetchStatus,
        is_complete: Predicate,
        *,
        interval: float | None = None,
        timeout: float | None = None,
        token: CancellationToken | None = None,
        success_message: Message = None,
        timeout_message: Message = None,
        on_complete: OnComplete | None = None,
    ) -> PollJob:
        """Poll ``fetch_status(job_id)`` until ``is_complete`` holds or time runs out."""
        job, created = self._register(str(job_id), is_complete, interval, timeout, token)
        if not created:
            return job
        return await self._run(job, fetch_status, success_message, timeout_message, on_complete)

    def start(
        self,
        job_id: str | int,
        fetch_status: FetchStatus,
        is_complete: Predicate,
        *,
        interval: float | None = None,
        timeout: float | None = None,
        token: CancellationToken | None = None,
        success_message: Message = None,
        timeout_message: Message = None,
        on_complete: OnComplete | None = None,
    ) -> PollJob:
        """Schedule a poll in the background and return its job immediately."""
        job, created = self._register(str(job_id), is_complete, interval, timeout, token)
        if created:
            self._spawn(job, self._run(job, fetch_status, success_message, timeout_message, on_complete))
        return job

    # ── Batch variant ────────────────────────────────────────────────────

    def _batch_args(
        self,
        job_ids: Iterable[str | int],
        fetch_states: FetchStates,
        is_complete: Predicate,
    ) -> tuple[list[str], FetchStatus, Predicate]:
        ids = [str(i) for i in job_ids]

        async def fetch(_batch_id: str) -> Mapping[str, Any]:
            return await fetch_states(ids)

        def all_complete(states: Mapping[str, Any]) -> bool:
            return all(i in states and is_complete(states[i]) for i in ids)

        return ids, fetch, all_complete

    def start_batch(
        self,
        job_ids: Iterable[str | int],
        fetch_states: FetchStates,
        is_complete: Predicate,
        *,
        batch_id: str | None = None,
        interval: float | None = None,
        timeout: float | None = None,
        token: CancellationToken | None = None,
        success_message: Message = None,
        timeout_message: Message = None,
        on_complete: OnComplete | None = None,
    ) -> PollJob:
        """Poll a set of jobs together; completes once every one of them has."""
        ids, fetch, all_complete = self._batch_args(job_ids, fetch_states, is_complete)
        job, created = self._register(
            batch_id or f"batch-{uuid.uuid4().hex[:12]}",
            all_complete,
            interval,
            self.batch_timeout if timeout is None else timeout,
            token,
            member_ids=ids,
        )
        if created:
            self._spawn(job, self._run(job, fetch, success_message, timeout_message, on_complete))
        return job

    @staticmethod
    def pending_members(job: PollJob, is_complete: Predicate) -> list[str]:
        """Members of a batch job that had not completed at the last poll."""
        states = job.last_state or {}
        return [i for i in job.member_ids if i not in states or not is_complete(states[i])]

    # ── Lifecycle ────────────────────────────────────────────────────────

    def _spawn(self, job: PollJob, coro: Awaitable[PollJob]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks[job.job_id] = task

        def _done(t: asyncio.Task[PollJob]) -> None:
            self._tasks.pop(job.job_id, None)
            if not t.cancelled() and t.exception() is not None:
                logger.error("Polling task for job %s crashed", job.job_id, exc_info=t.exception())

        task.add_done_callback(_done)

    async def wait(self, job_id: str | int) -> PollJob | None:
        task = self._tasks.get(str(job_id))
        if task is not None:
            return await asyncio.shield(task)
        return self.get(job_id)

    def cancel(self, job_id: str | int) -> bool:
        job = self.get(job_id)
        if job is None or not job.active:
            return False
        job.token.cancel()
        return True

    async def shutdown(self) -> None:
        """Cancel every running poll and wait for the loops to exit."""
        for job in self._jobs.values():
            job.token.cancel()
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        for handle in self._expiry.values():
            handle.cancel()
        self._expiry.clear()
        logger.info("Job poller stopped (%d polls cancelled)", len(tasks))
