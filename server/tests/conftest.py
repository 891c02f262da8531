from unittest.mock import AsyncMock

import pytest

from trackstudio.api.deps import get_studio
from trackstudio.main import app
from trackstudio.services.image_workflow import ImageWorkflowService
from trackstudio.services.job_poller import JobPoller
from trackstudio.services.notifications import notification_center
from trackstudio.services.orchestrator import OrchestratorClient
from trackstudio.services.progress import ProgressTracker
from trackstudio.services.settings_store import SettingsStore
from trackstudio.services.studio import StudioContext


@pytest.fixture
def studio(tmp_path):
    """Studio services wired to a mocked orchestrator client and installed on the app."""
    client = AsyncMock(spec=OrchestratorClient)
    client.base_url = "http://orchestrator.test/api/v1"
    poller = JobPoller(notifications=notification_center, interval=0.01, timeout=1, batch_timeout=1)
    context = StudioContext(
        client=client,
        poller=poller,
        notifications=notification_center,
        progress=ProgressTracker(client, retention=10),
        images=ImageWorkflowService(client, poller, notification_center),
        settings_store=SettingsStore(path=tmp_path / "settings.json"),
    )

    notification_center.clear()
    app.dependency_overrides[get_studio] = lambda: context
    yield context
    app.dependency_overrides.clear()
    notification_center.clear()
