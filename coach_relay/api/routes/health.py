from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter()


@router.get("/healthz", response_class=PlainTextResponse)
async def healthz():
    """Liveness check for the hosting platform."""
    return PlainTextResponse("ok", status_code=200)
