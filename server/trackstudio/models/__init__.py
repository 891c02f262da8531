from trackstudio.models.image import GeneratedImage, ImagePromptCreate, PromptSuggestion
from trackstudio.models.jobs import Notification, PollJobStatus
from trackstudio.models.lyrics import LyricsSection, SectionParseResult
from trackstudio.models.queue import ProgressEvent, QueueItem
from trackstudio.models.settings import HostSettings, StudioSettings
from trackstudio.models.song import Song, SongUpdate
from trackstudio.models.video import VideoItem, VideoPage, VideoQuery

__all__ = [
    "GeneratedImage",
    "ImagePromptCreate",
    "PromptSuggestion",
    "Notification",
    "PollJobStatus",
    "LyricsSection",
    "SectionParseResult",
    "ProgressEvent",
    "QueueItem",
    "HostSettings",
    "StudioSettings",
    "Song",
    "SongUpdate",
    "VideoItem",
    "VideoPage",
    "VideoQuery",
]
