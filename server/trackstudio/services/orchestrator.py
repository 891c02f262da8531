"""Async HTTP client for the TrackStudio orchestrator API.

Every call goes through ``_request`` so that transport failures and non-2xx
responses surface as a single ``OrchestratorError`` type. Response-shape
quirks of the orchestrator are normalized here and nowhere else.
"""

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx
from pydantic import ValidationError

from trackstudio.config import normalize_host, settings
from trackstudio.models.image import (
    GeneratedImage,
    ImagePromptCreate,
    PromptRequest,
    PromptSuggestion,
)
from trackstudio.models.queue import ProgressEvent, QueueItem
from trackstudio.models.settings import StudioSettings
from trackstudio.models.song import Song, SongUpdate

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

# Keys the orchestrator has used for the queue list over time
_QUEUE_KEYS = ("queue_items", "items", "queue")

UploadFile = tuple[str, bytes]


class OrchestratorError(Exception):
    """Error communicating with the orchestrator."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def orchestrator_api_url(host: str) -> str:
    """Build the API base URL from a host entered in settings."""
    base = normalize_host(host)
    if not base or "/api/" in base:
        return base
    return base + API_PREFIX


def normalize_queue_payload(data: Any) -> list[dict[str, Any]]:
    """Accept every queue response shape the orchestrator has produced."""
    if isinstance(data, dict):
        for key in _QUEUE_KEYS:
            if key in data and data[key] is not None:
                data = data[key]
                break
    return [item for item in data if isinstance(item, dict)] if isinstance(data, list) else []


def _parse_sse_data(data_lines: list[str]) -> ProgressEvent | None:
    payload = "\n".join(data_lines)
    try:
        return ProgressEvent.model_validate(json.loads(payload))
    except (json.JSONDecodeError, ValidationError):
        logger.warning("Failed to parse progress event: %.200s", payload)
        return None


class OrchestratorClient:
    """Thin async wrapper over the orchestrator REST and SSE endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.orchestrator_base_url).rstrip("/")
        self.timeout = settings.request_timeout_seconds if timeout is None else timeout
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._http

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def _request(self, method: str, path: str, action: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client().request(method, self._url(path), **kwargs)
        except httpx.RequestError as e:
            raise OrchestratorError(
                f"Cannot connect to orchestrator at {self.base_url}: {e}"
            ) from e

        if response.is_error:
            detail = response.text.strip()[:200]
            raise OrchestratorError(
                f"Failed to {action} (HTTP {response.status_code})"
                + (f": {detail}" if detail else ""),
                status_code=response.status_code,
            )
        return response

    async def _json(self, method: str, path: str, action: str, **kwargs: Any) -> Any:
        response = await self._request(method, path, action, **kwargs)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise OrchestratorError(f"Failed to {action}: invalid JSON response") from e

    @staticmethod
    def _model(model: type, data: Any, action: str) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise OrchestratorError(f"Failed to {action}: unexpected response shape") from e

    # ── Songs ────────────────────────────────────────────────────────────

    async def get_songs(self) -> list[Song]:
        data = await self._json("GET", "/songs", "fetch songs")
        songs = data.get("songs") if isinstance(data, dict) else data
        return [self._model(Song, s, "fetch songs") for s in songs or []]

    async def get_song(self, song_id: int) -> Song:
        data = await self._json("GET", f"/songs/{song_id}", "fetch song")
        return self._model(Song, data, "fetch song")

    async def create_song(self, song: SongUpdate) -> Song:
        data = await self._json(
            "POST", "/songs", "create song", json=song.model_dump(exclude_unset=True),
        )
        return self._model(Song, data, "create song")

    async def update_song(self, song_id: int, song: SongUpdate) -> Song:
        data = await self._json(
            "PUT", f"/songs/{song_id}", "update song",
            json=song.model_dump(exclude_unset=True),
        )
        return self._model(Song, data, "update song")

    async def delete_song(self, song_id: int) -> None:
        await self._request("DELETE", f"/songs/{song_id}", "delete song")

    async def analyze_song(self, song_id: int) -> Song:
        data = await self._json("POST", f"/songs/{song_id}/analyze", "analyze song")
        return self._model(Song, data, "analyze song")

    async def upload_audio(
        self,
        song_id: int,
        vocals: UploadFile | None = None,
        music: UploadFile | None = None,
    ) -> Song:
        files: dict[str, UploadFile] = {}
        if vocals:
            files["vocals"] = vocals
        if music:
            files["music"] = music
        data = await self._json("POST", f"/songs/{song_id}/upload", "upload audio", files=files)
        return self._model(Song, data, "upload audio")

    # ── Images ───────────────────────────────────────────────────────────

    async def get_images_by_song(self, song_id: int) -> list[GeneratedImage]:
        data = await self._json("GET", f"/songs/{song_id}/images", "fetch images")
        images = data.get("images") if isinstance(data, dict) else data
        return [self._model(GeneratedImage, i, "fetch images") for i in images or []]

    async def create_image_prompt(self, song_id: int, prompt: ImagePromptCreate) -> GeneratedImage:
        data = await self._json(
            "POST", f"/songs/{song_id}/images", "create image prompt", json=prompt.model_dump(),
        )
        return self._model(GeneratedImage, data, "create image prompt")

    async def update_image_prompt(
        self, image_id: int, prompt: str, negative_prompt: str = "",
    ) -> GeneratedImage:
        data = await self._json(
            "PUT", f"/images/{image_id}", "update image prompt",
            json={"prompt": prompt, "negative_prompt": negative_prompt},
        )
        return self._model(GeneratedImage, data, "update image prompt")

    async def regenerate_image(self, image_id: int) -> None:
        await self._request("POST", f"/images/{image_id}/regenerate", "start image generation")

    async def delete_all_images_by_song(self, song_id: int) -> None:
        await self._request("DELETE", f"/songs/{song_id}/images", "delete images")

    async def generate_prompt_from_lyrics(self, request: PromptRequest) -> PromptSuggestion:
        data = await self._json(
            "POST", "/images/generate-prompt", "generate prompt", json=request.model_dump(),
        )
        return self._model(PromptSuggestion, data, "generate prompt")

    # ── Queue ────────────────────────────────────────────────────────────

    async def get_queue(self) -> list[QueueItem]:
        data = await self._json("GET", "/queue", "fetch queue")
        return [self._model(QueueItem, q, "fetch queue") for q in normalize_queue_payload(data)]

    async def get_queue_item(self, queue_id: int) -> QueueItem:
        data = await self._json("GET", f"/queue/{queue_id}", "fetch queue item")
        return self._model(QueueItem, data, "fetch queue item")

    async def add_to_queue(self, song_id: int, priority: int = 0) -> QueueItem:
        data = await self._json(
            "POST", "/queue", "add to queue", json={"song_id": song_id, "priority": priority},
        )
        return self._model(QueueItem, data, "add to queue")

    async def update_queue_item(self, queue_id: int, updates: dict[str, Any]) -> QueueItem:
        data = await self._json("PUT", f"/queue/{queue_id}", "update queue item", json=updates)
        return self._model(QueueItem, data, "update queue item")

    async def delete_queue_item(self, queue_id: int) -> None:
        await self._request("DELETE", f"/queue/{queue_id}", "delete queue item")

    async def update_queue_flag(self, queue_id: int, flag: str | None) -> None:
        await self._request("PUT", f"/queue/{queue_id}/flag", "update flag", json={"flag": flag})

    async def stream_progress(self) -> AsyncIterator[ProgressEvent]:
        """Yield progress events from the orchestrator's SSE stream until it closes."""
        client = self._client()
        try:
            async with client.stream(
                "GET", self._url("/progress/stream"),
                headers={"Accept": "text/event-stream"},
                timeout=httpx.Timeout(self.timeout, read=None),
            ) as response:
                if response.is_error:
                    raise OrchestratorError(
                        f"Failed to open progress stream (HTTP {response.status_code})",
                        status_code=response.status_code,
                    )
                data_lines: list[str] = []
                async for line in response.aiter_lines():
                    if not line:
                        if data_lines:
                            event = _parse_sse_data(data_lines)
                            data_lines = []
                            if event is not None:
                                yield event
                        continue
                    if line.startswith("data:"):
                        data_lines.append(line[5:].lstrip())
                if data_lines:
                    event = _parse_sse_data(data_lines)
                    if event is not None:
                        yield event
        except httpx.RequestError as e:
            raise OrchestratorError(f"Progress stream error: {e}") from e

    # ── Settings & dashboard ─────────────────────────────────────────────

    async def get_settings(self) -> StudioSettings:
        data = await self._json("GET", "/settings", "fetch settings")
        return self._model(StudioSettings, data or {}, "fetch settings")

    async def save_settings(self, studio_settings: StudioSettings) -> StudioSettings:
        data = await self._json(
            "PUT", "/settings", "save settings", json=studio_settings.model_dump(exclude_none=True),
        )
        return self._model(StudioSettings, data or studio_settings.model_dump(), "save settings")

    async def upload_logo(self, logo: UploadFile) -> str:
        data = await self._json("POST", "/settings/logo", "upload logo", files={"logo": logo})
        return (data or {}).get("path", "")

    async def get_dashboard(self) -> dict[str, Any]:
        data = await self._json("GET", "/dashboard", "load dashboard")
        return data or {}

    async def check_health(self, base_url: str, path: str = "/health") -> dict[str, Any]:
        """Query a service's health endpoint; ``base_url`` need not be the orchestrator."""
        try:
            response = await self._client().get(normalize_host(base_url) + path)
        except httpx.RequestError as e:
            raise OrchestratorError(f"Network error: {e}") from e
        if response.is_error:
            raise OrchestratorError(
                response.text.strip() or response.reason_phrase,
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise OrchestratorError(f"Invalid JSON: {response.text[:200]}") from e

    async def close(self) -> None:
        if self._http:
            await self._http.aclose()
            self._http = None
