from fastapi import APIRouter, Depends, HTTPException

from trackstudio.api.deps import get_studio
from trackstudio.models.image import GeneratedImage, ImagePromptUpdate, ImageView, PromptSuggestion
from trackstudio.services.image_workflow import SectionNotFoundError
from trackstudio.services.studio import StudioContext

router = APIRouter()


@router.get("/songs/{song_id}/images")
async def list_images(song_id: int, studio: StudioContext = Depends(get_studio)) -> list[ImageView]:
    """Images for a song in song-structure order, with regeneration state."""
    return await studio.images.list_images(song_id)


@router.post("/songs/{song_id}/images/prompts")
async def generate_prompts(song_id: int, studio: StudioContext = Depends(get_studio)) -> dict:
    """Create one image prompt per lyrics section of the song."""
    song = await studio.client.get_song(song_id)
    created = await studio.images.generate_all_prompts(song)
    return {"song_id": song_id, "created": created}


@router.post("/songs/{song_id}/images/reanalyze")
async def reanalyze_prompts(song_id: int, studio: StudioContext = Depends(get_studio)) -> dict:
    """Delete all prompts and images of the song and rebuild them from its lyrics."""
    song = await studio.client.get_song(song_id)
    created = await studio.images.reanalyze_prompts(song)
    return {"song_id": song_id, "created": created}


@router.post("/songs/{song_id}/images/generate-missing")
async def generate_missing_images(song_id: int, studio: StudioContext = Depends(get_studio)) -> dict:
    job = await studio.images.generate_missing_images(song_id)
    if job is None:
        return {"song_id": song_id, "job": None}
    return {"song_id": song_id, "job": job.to_status()}


@router.post("/songs/{song_id}/images/{image_id}/regenerate")
async def regenerate_image(
    song_id: int, image_id: int, studio: StudioContext = Depends(get_studio),
) -> dict:
    job = await studio.images.regenerate_image(song_id, image_id)
    return {"song_id": song_id, "image_id": image_id, "job": job.to_status()}


@router.post("/songs/{song_id}/images/{image_id}/suggest-prompt")
async def suggest_prompt(
    song_id: int, image_id: int, studio: StudioContext = Depends(get_studio),
) -> PromptSuggestion:
    """Generate a prompt for one image from its section's lyrics, for review."""
    song = await studio.client.get_song(song_id)
    images = await studio.client.get_images_by_song(song_id)
    image = next((i for i in images if i.id == image_id), None)
    if image is None:
        raise HTTPException(status_code=404, detail="Image not found")

    try:
        return await studio.images.generate_prompt_for_image(song, image)
    except SectionNotFoundError as e:
        studio.notifications.error(str(e))
        raise HTTPException(status_code=422, detail=str(e)) from e


@router.put("/images/{image_id}")
async def update_image_prompt(
    image_id: int, update: ImagePromptUpdate, studio: StudioContext = Depends(get_studio),
) -> GeneratedImage:
    return await studio.images.update_prompt(image_id, update.prompt, update.negative_prompt)
