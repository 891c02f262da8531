import asyncio
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from trackstudio.api.deps import get_studio
from trackstudio.models.queue import AddToQueueRequest, FlagRequest, QueueItem, QueueItemView
from trackstudio.services.studio import StudioContext

router = APIRouter()
logger = logging.getLogger(__name__)

_KEEPALIVE_SECONDS = 15.0


@router.get("")
async def list_queue(studio: StudioContext = Depends(get_studio)) -> list[QueueItemView]:
    """Queue items, newest first, with live progress where available."""
    items = await studio.client.get_queue()
    items.sort(key=lambda q: q.id, reverse=True)
    return [studio.progress.overlay(item) for item in items]


@router.post("")
async def add_to_queue(
    request: AddToQueueRequest, studio: StudioContext = Depends(get_studio),
) -> QueueItem:
    item = await studio.client.add_to_queue(request.song_id, request.priority)
    studio.notifications.success("Song added to render queue!")
    return item


@router.delete("/{queue_id}")
async def cancel_queue_item(queue_id: int, studio: StudioContext = Depends(get_studio)) -> dict:
    """Cancel (or delete, once finished) a queue item."""
    await studio.client.delete_queue_item(queue_id)
    studio.notifications.success("Queue item cancelled successfully")
    return {"queue_id": queue_id, "deleted": True}


@router.post("/clear-finished")
async def clear_finished(studio: StudioContext = Depends(get_studio)) -> dict:
    items = await studio.client.get_queue()
    finished = [q for q in items if q.is_finished]
    if not finished:
        studio.notifications.info("No completed or failed items to clear")
        return {"cleared": 0}

    await asyncio.gather(*(studio.client.delete_queue_item(q.id) for q in finished))
    studio.notifications.success(f"Cleared {len(finished)} items successfully")
    return {"cleared": len(finished)}


@router.put("/{queue_id}/flag")
async def set_flag(
    queue_id: int, request: FlagRequest, studio: StudioContext = Depends(get_studio),
) -> dict:
    await studio.client.update_queue_flag(queue_id, request.flag)
    label = request.flag.replace("_", " ").title() if request.flag else "cleared"
    studio.notifications.success(f"Video flag {label}")
    return {"queue_id": queue_id, "flag": request.flag}


@router.get("/progress")
async def progress_snapshot(studio: StudioContext = Depends(get_studio)) -> dict:
    return {str(k): v for k, v in studio.progress.snapshot().items()}


async def _progress_events(studio: StudioContext) -> AsyncGenerator[str]:
    queue = studio.progress.subscribe()
    try:
        for event in studio.progress.snapshot().values():
            yield f"data: {event.model_dump_json()}\n\n"
        while True:
            try:
                event = await asyncio.wait_for(queue.get(), timeout=_KEEPALIVE_SECONDS)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield f"data: {event.model_dump_json()}\n\n"
    finally:
        studio.progress.unsubscribe(queue)
        logger.debug("Progress subscriber disconnected")


@router.get("/progress/stream")
async def stream_progress(studio: StudioContext = Depends(get_studio)) -> StreamingResponse:
    """Relay orchestrator progress events to the browser as Server-Sent Events."""
    return StreamingResponse(
        _progress_events(studio),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
