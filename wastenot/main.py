import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from wastenot.api import activities, auth, meals, users
from wastenot.config import settings
from wastenot.dependencies import Services, build_services
from wastenot.exceptions import WasteNotError

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


async def wastenot_exception_handler(request: Request, exc: WasteNotError):
    """Render domain errors as JSON with the error's status code."""
    logger.info(
        "%s on %s %s: %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, **exc.details},
    )


def create_app(services: Optional[Services] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        services: Pre-built service graph (tests inject one with a mock
            vision service); built from settings when omitted
    """
    app = FastAPI(title="WasteNot", version="0.1.0")
    app.state.services = services or build_services()

    app.add_exception_handler(WasteNotError, wastenot_exception_handler)

    # Serve uploaded meal photos
    app.mount(
        "/uploads",
        StaticFiles(directory=str(app.state.services.file_service.upload_dir)),
        name="uploads",
    )

    # Include routers
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(meals.router)
    app.include_router(activities.router)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app

