import asyncio
import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, UploadFile

from trackstudio.api.deps import get_studio
from trackstudio.models.settings import HostSettings, HostStatus, StudioSettings
from trackstudio.services.orchestrator import OrchestratorError
from trackstudio.services.settings_store import check_host
from trackstudio.services.studio import StudioContext

router = APIRouter()
logger = logging.getLogger(__name__)

ALLOWED_LOGO_EXTENSIONS = {".png", ".jpg", ".jpeg", ".svg", ".webp"}


@router.get("")
async def get_settings(studio: StudioContext = Depends(get_studio)) -> StudioSettings:
    """Orchestrator settings merged with the locally stored hosts."""
    try:
        remote = await studio.client.get_settings()
    except OrchestratorError as e:
        logger.warning("Failed to load settings from orchestrator: %s", e)
        remote = None
    return studio.settings_store.merge(remote)


@router.put("")
async def save_settings(
    update: StudioSettings, studio: StudioContext = Depends(get_studio),
) -> dict:
    """Save settings to the orchestrator, and the hosts locally when both are valid."""
    saved = await studio.client.save_settings(update)

    local_saved = await studio.settings_store.save(
        HostSettings(orchestrator_host=update.orchestrator_host, ai_host=update.ai_host)
    )
    if local_saved:
        studio.client.base_url = studio.settings_store.orchestrator_url
        logger.info("Orchestrator API now at %s", studio.client.base_url)

    studio.notifications.success("Settings saved successfully!")
    return {"settings": studio.settings_store.merge(saved), "local_saved": local_saved}


@router.post("/logo")
async def upload_logo(file: UploadFile, studio: StudioContext = Depends(get_studio)) -> dict:
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")
    ext = Path(file.filename).suffix.lower()
    if ext not in ALLOWED_LOGO_EXTENSIONS:
        raise HTTPException(status_code=400, detail=f"Unsupported logo format '{ext}'")

    path = await studio.client.upload_logo((file.filename, await file.read()))
    studio.notifications.success("Logo uploaded successfully!")
    return {"path": path}


@router.get("/status")
async def host_status(studio: StudioContext = Depends(get_studio)) -> list[HostStatus]:
    """Health of the orchestrator and AI hosts as currently configured."""
    hosts = studio.settings_store.hosts
    orchestrator, ai = await asyncio.gather(
        check_host(studio.client, "Orchestrator", hosts.orchestrator_host),
        check_host(studio.client, "AI Host", studio.settings_store.ai_url),
    )
    return [orchestrator, ai]
