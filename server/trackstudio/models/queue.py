from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


QueueStatus = Literal["pending", "processing", "completed", "failed"]
FINISHED_STATUSES = frozenset({"completed", "failed"})


class QueueItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    song_id: int
    status: str = "pending"
    priority: int = 0
    current_step: str = ""
    progress: float = 0
    error_message: str = ""
    retry_count: int = 0
    video_file_path: str = ""
    video_file_size: int = 0
    thumbnail_path: str = ""
    flag: str | None = None
    queued_at: str | None = None
    started_at: str | None = None
    completed_at: str | None = None

    @property
    def is_finished(self) -> bool:
        return self.status in FINISHED_STATUSES

    @property
    def video_filename(self) -> str:
        return self.video_file_path.split("/")[-1] if self.video_file_path else ""


class ProgressEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    queue_id: int
    status: str
    progress: float = 0
    current_step: str = ""
    error_message: str | None = None


class QueueItemView(BaseModel):
    """A queue item with live progress overlaid from the SSE stream."""

    item: QueueItem
    progress: float
    current_step: str


class AddToQueueRequest(BaseModel):
    song_id: int
    priority: int = Field(default=0, ge=0)


class FlagRequest(BaseModel):
    flag: str | None = None
