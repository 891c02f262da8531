from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, UploadFile

from trackstudio.api.deps import get_studio
from trackstudio.config import settings
from trackstudio.models.queue import QueueItem
from trackstudio.models.song import Song, SongSummary, SongUpdate
from trackstudio.services.lyrics_sectioner import format_karaoke_lyrics
from trackstudio.services.studio import StudioContext
from trackstudio.services.video_library import summarize_songs

router = APIRouter()

ALLOWED_EXTENSIONS = {".mp3", ".wav", ".flac", ".ogg", ".m4a", ".aac"}


async def _read_upload(file: UploadFile | None) -> tuple[str, bytes] | None:
    if file is None or not file.filename:
        return None
    ext = Path(file.filename).suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported format '{ext}'. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
        )
    return file.filename, await file.read()


@router.get("")
async def list_songs(search: str = "", studio: StudioContext = Depends(get_studio)) -> list[SongSummary]:
    """All songs, deduplicated by title and artist, with audio/video badges."""
    songs = await studio.client.get_songs()
    queue = await studio.client.get_queue()
    return summarize_songs(songs, queue, search)


@router.post("")
async def create_song(song: SongUpdate, studio: StudioContext = Depends(get_studio)) -> Song:
    if not song.title or not song.artist_name:
        raise HTTPException(status_code=422, detail="Title and artist are required")
    created = await studio.client.create_song(song)
    studio.notifications.success("Song created successfully!")
    return created


@router.get("/{song_id}")
async def get_song(song_id: int, studio: StudioContext = Depends(get_studio)) -> dict:
    song = await studio.client.get_song(song_id)
    queue = await studio.client.get_queue()
    has_video = any(
        q.song_id == song_id and q.status == "completed" and q.video_file_path for q in queue
    )
    return {"song": song, "has_video": has_video}


@router.put("/{song_id}")
async def update_song(
    song_id: int, song: SongUpdate, studio: StudioContext = Depends(get_studio),
) -> Song:
    updated = await studio.client.update_song(song_id, song)
    studio.notifications.success("Song saved successfully!")
    return updated


@router.delete("/{song_id}")
async def delete_song(song_id: int, studio: StudioContext = Depends(get_studio)) -> dict:
    await studio.client.delete_song(song_id)
    studio.notifications.success("Song deleted")
    return {"song_id": song_id, "deleted": True}


@router.post("/{song_id}/analyze")
async def analyze_song(song_id: int, studio: StudioContext = Depends(get_studio)) -> Song:
    studio.notifications.info("Analyzing audio...")
    song = await studio.client.analyze_song(song_id)
    studio.notifications.success("Audio analysis complete!")
    return song


@router.post("/{song_id}/upload")
async def upload_audio(
    song_id: int,
    vocals: UploadFile | None = None,
    music: UploadFile | None = None,
    studio: StudioContext = Depends(get_studio),
) -> Song:
    """Forward vocals and/or music stems to the orchestrator."""
    vocals_file = await _read_upload(vocals)
    music_file = await _read_upload(music)
    if not vocals_file and not music_file:
        raise HTTPException(
            status_code=400, detail="Please select at least one audio file to upload",
        )

    studio.notifications.info("Uploading audio files...")
    song = await studio.client.upload_audio(song_id, vocals=vocals_file, music=music_file)
    studio.notifications.success("Audio files uploaded successfully!")
    return song


@router.post("/{song_id}/render")
async def render_song(song_id: int, studio: StudioContext = Depends(get_studio)) -> QueueItem:
    item = await studio.client.add_to_queue(song_id, settings.render_priority)
    studio.notifications.success("Song added to render queue!")
    return item


@router.post("/{song_id}/karaoke")
async def generate_karaoke_lyrics(song_id: int, studio: StudioContext = Depends(get_studio)) -> Song:
    """Reflow the song's lyrics for karaoke display and store the result."""
    song = await studio.client.get_song(song_id)
    if not song.lyrics.strip():
        raise HTTPException(status_code=400, detail="Song has no lyrics to format")

    updated = await studio.client.update_song(
        song_id, SongUpdate(lyrics_karaoke=format_karaoke_lyrics(song.lyrics)),
    )
    studio.notifications.success("Karaoke lyrics generated successfully!")
    return updated
