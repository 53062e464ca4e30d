"""FastAPI application entry point."""

import logging
from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
import structlog

from app.api.routes import router
from app.config import settings
from app.monitoring.metrics import registry
from app import __version__


def configure_logging():
    """Configure structlog for console output in debug and JSON otherwise."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", level=level)

    renderer = structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )


configure_logging()

logger = structlog.get_logger(__name__)

app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="Favorable (4 and 5 star) Goodreads reviews, page by page",
    debug=settings.debug,
)

app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Service status."""
    return {"service": settings.app_name, "status": "running", "version": __version__}


@app.get("/metrics")
async def metrics():
    """Prometheus metrics."""
    if not settings.metrics_enabled:
        return Response(status_code=404)
    return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)


logger.info("app_initialized", env=settings.app_env, target_domain=settings.target_domain)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.host, port=settings.port, reload=settings.debug)
