import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trackstudio.api import images, jobs, lyrics, queue, settings as settings_api, songs, videos
from trackstudio.api.deps import get_studio
from trackstudio.config import settings
from trackstudio.services.image_workflow import NoSectionsFoundError
from trackstudio.services.notifications import notification_center
from trackstudio.services.orchestrator import OrchestratorError
from trackstudio.services.settings_store import SettingsStore
from trackstudio.services.studio import StudioContext

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    configure_logging()

    # Local host settings are read once here and only written on explicit save
    settings_store = SettingsStore()
    await settings_store.load()

    studio = StudioContext.create(settings_store)
    studio.progress.start()
    app.state.studio = studio
    logger.info("Using orchestrator at %s", studio.client.base_url)
    try:
        yield
    finally:
        # Stops every poll so nothing updates state after shutdown
        await studio.close()
        app.state.studio = None


app = FastAPI(
    title="TrackStudio Web API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(OrchestratorError)
async def orchestrator_error_handler(_request: Request, exc: OrchestratorError) -> JSONResponse:
    logger.warning("Orchestrator request failed: %s", exc)
    notification_center.error(str(exc))
    return JSONResponse(
        status_code=502,
        content={"detail": str(exc), "upstream_status": exc.status_code},
    )


@app.exception_handler(NoSectionsFoundError)
async def no_sections_handler(_request: Request, exc: NoSectionsFoundError) -> JSONResponse:
    notification_center.error(str(exc))
    return JSONResponse(status_code=422, content={"detail": str(exc)})


# API routes
app.include_router(songs.router, prefix="/api/songs", tags=["songs"])
app.include_router(lyrics.router, prefix="/api/lyrics", tags=["lyrics"])
app.include_router(images.router, prefix="/api", tags=["images"])
app.include_router(jobs.router, prefix="/api", tags=["jobs"])
app.include_router(queue.router, prefix="/api/queue", tags=["queue"])
app.include_router(videos.router, prefix="/api/videos", tags=["videos"])
app.include_router(settings_api.router, prefix="/api/settings", tags=["settings"])


@app.get("/api/dashboard")
async def dashboard(studio: StudioContext = Depends(get_studio)) -> dict:
    """Orchestrator-side production statistics."""
    return await studio.client.get_dashboard()


@app.get("/api/health")
async def health_check() -> dict[str, str]:
    return {"status": "ok"}
