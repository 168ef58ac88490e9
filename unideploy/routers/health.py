"""
Health check endpoint.

Always returns 200 OK so monitoring can tell the process is up; backend
reachability is reported by /api/containers/platforms instead.
"""

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

import unideploy
from unideploy.config.settings import get_settings
from unideploy.services.platform_detector import detect_platform

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str
    platform: Optional[str] = None


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Liveness plus the platform 'auto' currently resolves to."""
    return HealthResponse(
        status="healthy",
        version=unideploy.__version__,
        platform=detect_platform(get_settings()),
    )
