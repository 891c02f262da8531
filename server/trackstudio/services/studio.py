import logging
from dataclasses import dataclass

from trackstudio.services.image_workflow import ImageWorkflowService
from trackstudio.services.job_poller import JobPoller
from trackstudio.services.notifications import NotificationCenter, notification_center
from trackstudio.services.orchestrator import OrchestratorClient
from trackstudio.services.progress import ProgressTracker
from trackstudio.services.settings_store import SettingsStore

logger = logging.getLogger(__name__)


@dataclass
class StudioContext:
    """Long-lived services shared by every request, owned by the app lifespan."""

    client: OrchestratorClient
    poller: JobPoller
    notifications: NotificationCenter
    progress: ProgressTracker
    images: ImageWorkflowService
    settings_store: SettingsStore

    @classmethod
    def create(cls, settings_store: SettingsStore) -> "StudioContext":
        client = OrchestratorClient(base_url=settings_store.orchestrator_url)
        poller = JobPoller(notifications=notification_center)
        return cls(
            client=client,
            poller=poller,
            notifications=notification_center,
            progress=ProgressTracker(client),
            images=ImageWorkflowService(client, poller, notification_center),
            settings_store=settings_store,
        )

    async def close(self) -> None:
        await self.poller.shutdown()
        await self.progress.stop()
        await self.client.close()
        logger.info("Studio services stopped")
