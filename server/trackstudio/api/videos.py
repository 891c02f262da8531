from fastapi import APIRouter, Depends, Query

from trackstudio.api.deps import get_studio
from trackstudio.models.video import TempoBand, VideoPage, VideoQuery, VideoSort
from trackstudio.services.studio import StudioContext
from trackstudio.services.video_library import build_video_items, paginate_videos

router = APIRouter()


@router.get("")
async def list_videos(
    search: str = "",
    tempo: TempoBand = "all",
    genre: str = "all",
    key: str = "all",
    flag: str = "all",
    sort: VideoSort = "newest",
    page: int = Query(default=1, ge=1),
    studio: StudioContext = Depends(get_studio),
) -> VideoPage:
    """Latest finished video per song, filtered and paged."""
    queue = await studio.client.get_queue()
    songs = await studio.client.get_songs()
    query = VideoQuery(
        search=search, tempo=tempo, genre=genre, key=key, flag=flag, sort=sort, page=page,
    )
    return paginate_videos(build_video_items(queue, songs), query)
