"""Video library built from completed queue items and their songs."""

from collections.abc import Iterable

from trackstudio.config import settings
from trackstudio.models.queue import QueueItem
from trackstudio.models.song import Song, SongSummary
from trackstudio.models.video import VideoItem, VideoPage, VideoQuery

_MAX_SUGGESTIONS = 5

# (lower, upper) BPM bounds; upper is exclusive
_TEMPO_BANDS: dict[str, tuple[float, float]] = {
    "slow": (0, 90),
    "medium": (90, 120),
    "fast": (120, 150),
    "very-fast": (150, float("inf")),
}


def _completed_videos(queue: Iterable[QueueItem]) -> list[QueueItem]:
    return [q for q in queue if q.status == "completed" and q.video_file_path]


def build_video_items(queue: Iterable[QueueItem], songs: Iterable[Song]) -> list[VideoItem]:
    """Latest completed video per song, newest first."""
    songs_by_id = {s.id: s for s in songs}
    latest: dict[int, VideoItem] = {}

    for item in _completed_videos(queue):
        song = songs_by_id.get(item.song_id)
        video = VideoItem(
            id=item.id,
            song_id=item.song_id,
            title=song.title if song and song.title else f"Song {item.song_id}",
            artist=song.artist_name if song and song.artist_name else "Unknown Artist",
            genre=song.genre if song else "",
            video_file_path=item.video_filename,
            thumbnail_path=item.thumbnail_path,
            duration=song.duration_seconds if song else 0,
            bpm=song.bpm if song else 0,
            key=song.key if song else "",
            tempo=song.tempo if song else "",
            flag=item.flag or None,
            completed_at=item.completed_at or "",
        )
        existing = latest.get(item.song_id)
        if existing is None or video.completed_at > existing.completed_at:
            latest[item.song_id] = video

    return sorted(latest.values(), key=lambda v: v.completed_at, reverse=True)


def _in_tempo_band(bpm: float, band: str) -> bool:
    low, high = _TEMPO_BANDS[band]
    if band == "slow" and bpm <= 0:
        return False
    return low <= bpm < high


def _matches_flag(video: VideoItem, flag: str) -> bool:
    if flag == "all":
        return True
    if flag == "flagged":
        return video.flag is not None
    if flag == "unflagged":
        return video.flag is None
    return video.flag == flag


def search_suggestions(videos: Iterable[VideoItem], term: str) -> list[str]:
    term = term.strip().lower()
    if not term:
        return []
    suggestions: list[str] = []
    for video in videos:
        for candidate in (video.title, video.artist):
            if term in candidate.lower() and candidate not in suggestions:
                suggestions.append(candidate)
    return suggestions[:_MAX_SUGGESTIONS]


def filter_videos(videos: list[VideoItem], query: VideoQuery) -> list[VideoItem]:
    term = query.search.strip().lower()
    result = [
        v for v in videos
        if (not term or term in v.title.lower() or term in v.artist.lower())
        and (query.tempo == "all" or _in_tempo_band(v.bpm, query.tempo))
        and (query.genre == "all" or v.genre == query.genre)
        and (query.key == "all" or v.key == query.key)
        and _matches_flag(v, query.flag)
    ]

    if query.sort == "newest":
        result.sort(key=lambda v: v.completed_at, reverse=True)
    elif query.sort == "oldest":
        result.sort(key=lambda v: v.completed_at)
    elif query.sort == "title-asc":
        result.sort(key=lambda v: v.title.lower())
    elif query.sort == "title-desc":
        result.sort(key=lambda v: v.title.lower(), reverse=True)
    elif query.sort == "artist-asc":
        result.sort(key=lambda v: v.artist.lower())
    return result


def paginate_videos(
    videos: list[VideoItem], query: VideoQuery, per_page: int | None = None,
) -> VideoPage:
    """Apply filters and return the first ``page`` pages, like infinite scroll."""
    per_page = per_page or settings.videos_per_page
    filtered = filter_videos(videos, query)
    shown = query.page * per_page
    return VideoPage(
        videos=filtered[:shown],
        total=len(filtered),
        page=query.page,
        has_more=len(filtered) > shown,
        suggestions=search_suggestions(videos, query.search),
    )


def dedupe_songs(songs: Iterable[Song]) -> list[Song]:
    """Collapse songs sharing a title and artist, keeping the newest (highest id)."""
    unique: dict[tuple[str, str], Song] = {}
    for song in songs:
        key = (song.title.lower(), song.artist_name.lower())
        existing = unique.get(key)
        if existing is None or song.id > existing.id:
            unique[key] = song
    return list(unique.values())


def summarize_songs(
    songs: Iterable[Song], queue: Iterable[QueueItem], search: str = "",
) -> list[SongSummary]:
    """Song list rows with audio/video badges, filtered by title or artist."""
    videos = {q.song_id: q.video_filename for q in _completed_videos(queue)}
    term = search.strip().lower()
    return [
        SongSummary(
            song=song,
            has_audio=song.has_audio,
            has_video=song.id in videos,
            video_filename=videos.get(song.id),
        )
        for song in dedupe_songs(songs)
        if not term or term in song.title.lower() or term in song.artist_name.lower()
    ]
