"""
Resume Screening Pipeline - FastAPI application
Operator endpoints for the scheduled jobs plus a health check.

Run with:  uvicorn screening.main:app --app-dir backend
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import Depends, FastAPI

from screening.api.routes import router
from screening.core.config import Settings, get_settings
from screening.core.dependencies import ServiceContainer, get_container
from screening.core.exceptions import AppException, app_exception_handler, generic_exception_handler
from screening.core.logging import setup_logging

load_dotenv()
logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, container: Optional[ServiceContainer] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(
            level=settings.log_level,
            json_format=settings.json_logs or settings.is_production,
            log_file=settings.log_file,
        )
        logger.info(f"🚀 {settings.app_name} v{settings.app_version} starting ({settings.environment})")
        app.state.container = container or ServiceContainer(settings)
        logger.info(f"🤖 Providers: {', '.join(p.name for p in app.state.container.providers) or 'none'}")
        logger.info(f"⚖️ Low-confidence policy: {settings.low_confidence_policy.value}")
        logger.info("✅ Server ready")
        yield
        logger.info("🛑 Shutting down")

    app = FastAPI(
        title=settings.app_name,
        description="Candidate résumé screening with redundant AI scoring providers",
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
    app.include_router(router)

    @app.get("/health")
    def health(container: ServiceContainer = Depends(get_container)):
        return container.health.get_overall_status()

    return app


app = create_app()


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run("screening.main:app", host=settings.host, port=settings.port)
