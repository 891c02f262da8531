from pydantic import BaseModel, ConfigDict


class Song(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    album_id: int | None = None
    title: str = ""
    artist_name: str = ""
    genre: str = ""
    lyrics: str = ""
    lyrics_display: str = ""
    lyrics_karaoke: str = ""
    lyrics_sections: str = ""
    duration_seconds: float = 0
    bpm: float = 0
    key: str = ""
    tempo: str = ""
    vocals_stem_path: str = ""
    music_stem_path: str = ""
    mixed_audio_path: str = ""
    metadata_file_path: str = ""
    vocal_timing: str = ""
    brand_logo_path: str = ""
    copyright_text: str = ""
    background_style: str = ""
    spectrum_style: str = ""
    spectrum_color: str = ""
    spectrum_opacity: float = 0.5
    target_resolution: str = ""
    show_metadata: bool = False
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def has_audio(self) -> bool:
        return bool(self.vocals_stem_path or self.music_stem_path)


class SongUpdate(BaseModel):
    """Partial song payload; only fields that were set are sent upstream."""

    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    artist_name: str | None = None
    album_id: int | None = None
    genre: str | None = None
    lyrics: str | None = None
    lyrics_display: str | None = None
    lyrics_karaoke: str | None = None
    duration_seconds: float | None = None
    bpm: float | None = None
    key: str | None = None
    tempo: str | None = None
    vocals_stem_path: str | None = None
    music_stem_path: str | None = None
    mixed_audio_path: str | None = None
    brand_logo_path: str | None = None
    copyright_text: str | None = None
    background_style: str | None = None
    spectrum_style: str | None = None
    spectrum_color: str | None = None
    spectrum_opacity: float | None = None
    target_resolution: str | None = None
    show_metadata: bool | None = None


class SongSummary(BaseModel):
    song: Song
    has_audio: bool
    has_video: bool
    video_filename: str | None = None
