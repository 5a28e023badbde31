"""Health check endpoint with storage connectivity check."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from studyshare.api.deps import get_store
from studyshare.repositories.base import Store
from studyshare.schemas.health import HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def get_health(request: Request, store: Annotated[Store, Depends(get_store)]) -> HealthResponse:
    """
    Return service health status and database connectivity.
    Used by load balancers and monitoring.
    """
    settings = request.app.state.settings
    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        storage=settings.STORAGE_BACKEND,
        database="connected" if store.ping() else "disconnected",
    )
