from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


PollStatus = Literal["pending", "polling", "completed", "timed_out", "cancelled"]
NotificationType = Literal["success", "info", "warning", "error"]


class PollJobStatus(BaseModel):
    job_id: str
    status: PollStatus
    started_at: datetime
    finished_at: datetime | None = None
    interval: float
    timeout: float
    attempts: int = 0
    member_ids: list[str] = Field(default_factory=list)


class Notification(BaseModel):
    id: str
    type: NotificationType
    message: str
    created_at: datetime
