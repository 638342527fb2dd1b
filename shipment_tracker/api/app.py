"""
FastAPI application factory.

* Registers routes for shipments and health.
* Connects / disconnects the database and Redis handles via lifespan events.
* Applies CORS and rate-limiting middleware; maps tracking errors to 4xx responses.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shipment_tracker.api.middleware import (
    configure_rate_limit,
    limiter,
    register_error_handlers,
)
from shipment_tracker.api.routes import health, shipments
from shipment_tracker.config import Settings, settings as default_settings
from shipment_tracker.infrastructure.database import Database
from shipment_tracker.infrastructure.redis_client import RedisConnection

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open storage handles on startup; close them on shutdown."""
    await app.state.database.connect()
    await app.state.redis.connect()
    logger.info("Shipment tracker started")
    yield
    await app.state.redis.disconnect()
    await app.state.database.disconnect()
    logger.info("Shipment tracker stopped")


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    redis: Optional[RedisConnection] = None,
) -> FastAPI:
    settings = settings or default_settings
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title="Shipment Tracker API",
        description=(
            "Tracks container shipments between geographic points.  Each "
            "reported position updates the route, status and ETA; the ETA "
            "endpoint derives progress and average speed from the route."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Storage handles (connected in lifespan)
    app.state.settings = settings
    app.state.database = database or Database(settings.database_url)
    app.state.redis = redis or RedisConnection(settings.redis_url)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.cors_origins),
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Rate limiter
    configure_rate_limit(settings.rate_limit)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_error_handlers(app)

    # Routers
    app.include_router(shipments.router, prefix="/api/v1")
    app.include_router(health.router, prefix="/api/v1")

    return app
