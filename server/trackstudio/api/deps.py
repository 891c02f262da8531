from fastapi import HTTPException, Request

from trackstudio.services.studio import StudioContext


def get_studio(request: Request) -> StudioContext:
    studio = getattr(request.app.state, "studio", None)
    if studio is None:
        raise HTTPException(status_code=503, detail="Studio services are not running")
    return studio
