"""
Story Playground - FastAPI Application

Main entry point: build characters from photos with an AI analysis, then cast
them in AI-written stories.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables (override existing to use project-specific config)
load_dotenv(override=True)

from config import get_settings
from config.settings import missing_secrets
from schemas.api import HealthResponse

logging.basicConfig(
    level=logging.DEBUG if get_settings().debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting Story Playground...")
    logger.info("Debug mode: %s", get_settings().debug)

    # Verify required secrets; requests that need a missing one fail on their own
    missing = missing_secrets()
    if missing:
        logger.warning("Missing environment variables: %s", ", ".join(missing))
    else:
        logger.info("All required environment variables configured")

    yield

    logger.info("Shutting down Story Playground...")


# Create FastAPI app
app = FastAPI(
    title="Story Playground",
    description="Turn photos into AI-analysed characters and cast them in AI-written stories",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Get the project root directory
PROJECT_ROOT = Path(__file__).parent.parent
STATIC_DIR = PROJECT_ROOT / "static"

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[get_settings().site_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/status")
async def status():
    """Liveness endpoint."""
    return {
        "status": "ok",
        "service": "Story Playground",
        "version": "0.1.0",
    }


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Detailed health check."""
    db_status = "not_configured"
    generation_status = "not_configured"

    try:
        from api.dependencies import get_database
        client = get_database().get_client()
        # Try a simple query to verify connection
        client.table("characters").select("id").limit(1).execute()
        db_status = "connected"
    except Exception as e:
        db_status = f"error: {str(e)[:50]}"

    try:
        from api.dependencies import get_generation_service
        if get_generation_service().client:
            generation_status = "configured"
    except Exception as e:
        generation_status = f"error: {str(e)[:50]}"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "database": db_status,
        "generation_service": generation_status,
    }


# Import and include routers
from api.routes.analysis import router as analysis_router
from api.routes.stories import router as stories_router
from api.routes.characters import router as characters_router
from api.routes.frontend import router as frontend_router

app.include_router(analysis_router)
app.include_router(stories_router)
app.include_router(characters_router)
app.include_router(frontend_router)


# Static file mounts (MUST be after route definitions)
if STATIC_DIR.exists():
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")


if __name__ == "__main__":
    import uvicorn

    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "8000"))

    uvicorn.run(
        "api.main:app",
        host=host,
        port=port,
        reload=get_settings().debug,
    )
