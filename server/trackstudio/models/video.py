from typing import Literal

from pydantic import BaseModel, Field


TempoBand = Literal["all", "slow", "medium", "fast", "very-fast"]
VideoSort = Literal["newest", "oldest", "title-asc", "title-desc", "artist-asc"]


class VideoItem(BaseModel):
    id: int
    song_id: int
    title: str
    artist: str
    genre: str = ""
    video_file_path: str = ""
    thumbnail_path: str = ""
    duration: float = 0
    bpm: float = 0
    key: str = ""
    tempo: str = ""
    flag: str | None = None
    completed_at: str = ""


class VideoQuery(BaseModel):
    search: str = ""
    tempo: TempoBand = "all"
    genre: str = "all"
    key: str = "all"
    flag: str = "all"
    sort: VideoSort = "newest"
    page: int = Field(default=1, ge=1)


class VideoPage(BaseModel):
    videos: list[VideoItem]
    total: int
    page: int
    has_more: bool
    suggestions: list[str] = Field(default_factory=list)
