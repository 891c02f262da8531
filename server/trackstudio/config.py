from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root (one level above server/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        env_prefix="TRACKSTUDIO_",
        extra="ignore",
    )

    # Orchestrator
    orchestrator_url: str = "http://localhost:8080/api/v1"
    ai_host: str = ""
    request_timeout_seconds: float = 30.0

    # Job polling
    poll_interval_seconds: float = 3.0
    image_poll_timeout_seconds: float = 120.0
    batch_poll_timeout_seconds: float = 180.0
    job_retention_seconds: float = 60.0

    # UI state
    notification_ttl_seconds: float = 5.0
    progress_retention_seconds: float = 10.0
    progress_reconnect_seconds: float = 3.0
    videos_per_page: int = 12

    # Image prompt defaults
    image_width: int = 1920
    image_height: int = 1080
    image_model: str = "stable-diffusion-xl"
    render_priority: int = 5

    # App settings
    local_settings_path: str = "./data/trackstudio_settings.json"
    cors_origins: str = "http://localhost:3000"
    log_level: str = "INFO"

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]

    @property
    def orchestrator_base_url(self) -> str:
        return normalize_host(self.orchestrator_url)

    @property
    def local_settings_file(self) -> Path:
        path = Path(self.local_settings_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        return path


def normalize_host(host: str | None) -> str:
    """Turn a bare host ("10.0.0.5:8080") into a base URL without a trailing slash."""
    value = (host or "").strip()
    if not value:
        return ""
    if not value.startswith("http"):
        value = "http://" + value
    return value.rstrip("/")


settings = Settings()
