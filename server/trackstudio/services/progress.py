"""Live render-queue progress fed by the orchestrator's SSE stream."""

import asyncio
import logging

from trackstudio.config import settings
from trackstudio.models.queue import FINISHED_STATUSES, ProgressEvent, QueueItem, QueueItemView
from trackstudio.services.orchestrator import OrchestratorClient, OrchestratorError

logger = logging.getLogger(__name__)

_SUBSCRIBER_BUFFER = 100


class ProgressTracker:
    """Keeps the latest progress event per queue item and relays events.

    Finished items (completed or failed) are forgotten ``retention`` seconds
    after their final event, so the queue view falls back to the stored
    queue item state.
    """

    def __init__(
        self,
        client: OrchestratorClient,
        retention: float | None = None,
        reconnect_delay: float | None = None,
    ) -> None:
        self.client = client
        self.retention = settings.progress_retention_seconds if retention is None else retention
        self.reconnect_delay = (
            settings.progress_reconnect_seconds if reconnect_delay is None else reconnect_delay
        )
        self._progress: dict[int, ProgressEvent] = {}
        self._expiry: dict[int, asyncio.TimerHandle] = {}
        self._subscribers: set[asyncio.Queue[ProgressEvent]] = set()
        self._task: asyncio.Task[None] | None = None

    # ── State ────────────────────────────────────────────────────────────

    def get(self, queue_id: int) -> ProgressEvent | None:
        return self._progress.get(queue_id)

    def snapshot(self) -> dict[int, ProgressEvent]:
        return dict(self._progress)

    def overlay(self, item: QueueItem) -> QueueItemView:
        """Prefer live progress over the stored queue item values."""
        event = self._progress.get(item.id)
        if event is not None:
            return QueueItemView(item=item, progress=event.progress, current_step=event.current_step)
        return QueueItemView(item=item, progress=item.progress or 0, current_step=item.current_step)

    def apply(self, event: ProgressEvent) -> None:
        self._progress[event.queue_id] = event

        pending = self._expiry.pop(event.queue_id, None)
        if pending is not None:
            pending.cancel()
        if event.status in FINISHED_STATUSES:
            loop = asyncio.get_running_loop()
            self._expiry[event.queue_id] = loop.call_later(
                self.retention, self._forget, event.queue_id,
            )

        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("Progress subscriber is falling behind; dropping event")

    def _forget(self, queue_id: int) -> None:
        self._expiry.pop(queue_id, None)
        self._progress.pop(queue_id, None)

    # ── Subscribers ──────────────────────────────────────────────────────

    def subscribe(self) -> asyncio.Queue[ProgressEvent]:
        queue: asyncio.Queue[ProgressEvent] = asyncio.Queue(maxsize=_SUBSCRIBER_BUFFER)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[ProgressEvent]) -> None:
        self._subscribers.discard(queue)

    # ── Stream consumption ───────────────────────────────────────────────

    async def run(self) -> None:
        """Consume the orchestrator stream forever, reconnecting on errors."""
        while True:
            try:
                async for event in self.client.stream_progress():
                    self.apply(event)
                logger.info("Progress stream closed by orchestrator; reconnecting")
            except OrchestratorError as e:
                logger.warning("Progress stream unavailable: %s", e)
            except Exception:
                logger.exception("Progress stream failed unexpectedly; reconnecting")
            await asyncio.sleep(self.reconnect_delay)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        for handle in self._expiry.values():
            handle.cancel()
        self._expiry.clear()
