"""
unideploy - Unified Container Deployment
FastAPI application entry point
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

import unideploy
from unideploy.config.settings import get_settings
from unideploy.routers import containers, health, tools
from unideploy.services.mcp_server import setup_mcp_server
from unideploy.services.platform_detector import detect_platform
from unideploy.utils.logging import configure_logging, get_logger

settings = get_settings()

# Configure logging
configure_logging(settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("unideploy starting up...")
    logger.info(f"Detected platform: {detect_platform(settings)}")
    yield
    logger.info("unideploy shutting down...")


# Create FastAPI app
app = FastAPI(
    title="unideploy API",
    description="Unified container deployment across Docker, EC2, ECS Fargate and Kubernetes",
    version=unideploy.__version__,
    lifespan=lifespan
)

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(tools.router, prefix="/api/tools", tags=["tools"])
app.include_router(containers.router, prefix="/api/containers", tags=["containers"])

# MCP over SSE at /mcp/sse
setup_mcp_server(app)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "unideploy API",
        "version": unideploy.__version__,
        "status": "running"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.HOST, port=settings.PORT, reload=False)
