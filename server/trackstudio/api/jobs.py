from fastapi import APIRouter, Depends, HTTPException

from trackstudio.api.deps import get_studio
from trackstudio.models.jobs import Notification, PollJobStatus
from trackstudio.services.studio import StudioContext

router = APIRouter()


@router.get("/jobs")
async def list_jobs(studio: StudioContext = Depends(get_studio)) -> dict:
    """Polling jobs and the ids currently shown as busy."""
    return {
        "in_progress": sorted(studio.poller.in_progress),
        "jobs": [job.to_status() for job in studio.poller.jobs()],
    }


@router.get("/jobs/{job_id}")
async def get_job(job_id: str, studio: StudioContext = Depends(get_studio)) -> PollJobStatus:
    job = studio.poller.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job.to_status()


@router.delete("/jobs/{job_id}")
async def cancel_job(job_id: str, studio: StudioContext = Depends(get_studio)) -> dict:
    if not studio.poller.cancel(job_id):
        raise HTTPException(status_code=404, detail="No active job with that id")
    return {"job_id": job_id, "cancelled": True}


@router.get("/notifications")
async def list_notifications(studio: StudioContext = Depends(get_studio)) -> list[Notification]:
    return studio.notifications.active()


@router.delete("/notifications/{notification_id}")
async def dismiss_notification(
    notification_id: str, studio: StudioContext = Depends(get_studio),
) -> dict:
    if not studio.notifications.dismiss(notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"id": notification_id, "dismissed": True}
