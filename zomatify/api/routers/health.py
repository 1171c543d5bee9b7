# zomatify/api/routers/health.py
from datetime import datetime, timezone

from fastapi import APIRouter

from zomatify.domain.schemas import HealthOut
from zomatify.utils import settings

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthOut)
def health():
    return HealthOut(
        status="OK",
        message="Zomatify Backend is running",
        timestamp=datetime.now(timezone.utc),
        environment=settings.ENVIRONMENT,
    )
