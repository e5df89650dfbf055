from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.data.database import ping

router = APIRouter(tags=["health"])


@router.get("/health")
def health(request: Request):
    if not ping(request.app.state.engine):
        return JSONResponse(status_code=503, content={"status": "unavailable"})
    return {"status": "ok"}
