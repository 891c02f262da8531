"""Local host settings: loaded once at startup, written only on explicit save."""

import json
import logging
import re
from pathlib import Path

import aiofiles
from pydantic import ValidationError

from trackstudio.config import normalize_host, settings
from trackstudio.models.settings import (
    DEFAULT_MASTER_NEGATIVE_PROMPT,
    DEFAULT_MASTER_PROMPT,
    HostSettings,
    HostStatus,
    StudioSettings,
)
from trackstudio.services.orchestrator import (
    OrchestratorClient,
    OrchestratorError,
    orchestrator_api_url,
)

logger = logging.getLogger(__name__)

_HOST_PATTERN = re.compile(r"^(https?://)?[A-Za-z0-9.-]+(:\d+)?(/\S*)?$")


def is_valid_host(host: str | None) -> bool:
    return bool(host) and bool(_HOST_PATTERN.match(host.strip()))


class SettingsStore:
    """Holds the orchestrator and AI host entered by the user.

    The orchestrator keeps the rest of the studio settings; these two hosts
    live here because they decide where the orchestrator is in the first
    place.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or settings.local_settings_file
        self.hosts = HostSettings()

    async def load(self) -> HostSettings:
        if not self.path.exists():
            logger.info("No local settings at %s; using defaults", self.path)
            return self.hosts

        try:
            async with aiofiles.open(self.path, encoding="utf-8") as f:
                raw = await f.read()
            self.hosts = HostSettings.model_validate(json.loads(raw))
        except (OSError, json.JSONDecodeError, ValidationError):
            logger.exception("Ignoring unreadable local settings at %s", self.path)
        return self.hosts

    async def save(self, hosts: HostSettings) -> bool:
        """Persist both hosts; returns False (and writes nothing) if either is invalid."""
        orchestrator_host = hosts.orchestrator_host.strip()
        ai_host = hosts.ai_host.strip()
        if not (is_valid_host(orchestrator_host) and is_valid_host(ai_host)):
            logger.info("Not saving local host settings: both hosts must be valid")
            return False

        self.hosts = HostSettings(orchestrator_host=orchestrator_host, ai_host=ai_host)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.path, "w", encoding="utf-8") as f:
            await f.write(self.hosts.model_dump_json(indent=2))
        return True

    def merge(self, remote: StudioSettings | None) -> StudioSettings:
        """Combine orchestrator settings with local hosts; local non-empty hosts win."""
        merged = (remote or StudioSettings()).model_copy()
        if not merged.master_prompt:
            merged.master_prompt = DEFAULT_MASTER_PROMPT
        if not merged.master_negative_prompt:
            merged.master_negative_prompt = DEFAULT_MASTER_NEGATIVE_PROMPT
        merged.orchestrator_host = self.hosts.orchestrator_host.strip() or merged.orchestrator_host
        merged.ai_host = self.hosts.ai_host.strip() or merged.ai_host
        return merged

    @property
    def orchestrator_url(self) -> str:
        """API base URL to use, falling back to the configured default."""
        if self.hosts.orchestrator_host.strip():
            return orchestrator_api_url(self.hosts.orchestrator_host)
        return settings.orchestrator_base_url

    @property
    def ai_url(self) -> str:
        return normalize_host(self.hosts.ai_host or settings.ai_host)


async def check_host(
    client: OrchestratorClient, label: str, host: str, path: str = "/health",
) -> HostStatus:
    url = normalize_host(host)
    if not url:
        return HostStatus(label=label, error=f"Set {label} to check status.")
    try:
        data = await client.check_health(url, path)
    except OrchestratorError as e:
        return HostStatus(label=label, url=url, error=str(e))
    return HostStatus(
        label=label,
        url=url,
        service=data.get("service") or label,
        status=data.get("status"),
    )
