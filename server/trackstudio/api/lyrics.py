from fastapi import APIRouter

from trackstudio.models.lyrics import KaraokeFormatRequest, LyricsParseRequest
from trackstudio.services.lyrics_sectioner import (
    format_karaoke_lyrics,
    parse_sections,
    sort_sections,
)

router = APIRouter()


@router.post("/sections")
async def preview_sections(request: LyricsParseRequest) -> dict:
    """Show how lyrics will be split into image sections."""
    result = parse_sections(request.lyrics)
    sections = sort_sections(result.sections) if request.canonical_order else result.sections

    return {
        "sections": [s.model_dump() for s in sections],
        "skipped_lines": result.skipped_lines,
        "message": None if sections else "No valid sections found",
    }


@router.post("/karaoke")
async def format_karaoke(request: KaraokeFormatRequest) -> dict[str, str]:
    return {"lyrics_karaoke": format_karaoke_lyrics(request.lyrics)}
