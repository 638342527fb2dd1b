"""Rate limiting (slowapi) and error-to-HTTP mapping."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from shipment_tracker.config import settings as default_settings
from shipment_tracker.domain.errors import (
    InvalidInput,
    InvalidStateTransition,
    ShipmentBusy,
    ShipmentNotFound,
    TerminalStateViolation,
    TrackingError,
)

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)

# Limit applied to shipment routes; set by create_app, read per request.
_route_limit = default_settings.rate_limit


def configure_rate_limit(value: str) -> None:
    global _route_limit
    _route_limit = value


def route_rate_limit() -> str:
    return _route_limit

ERROR_STATUS: dict[type[TrackingError], int] = {
    ShipmentNotFound: 404,
    InvalidInput: 400,
    TerminalStateViolation: 409,
    InvalidStateTransition: 409,
    ShipmentBusy: 409,
}


async def tracking_error_handler(request: Request, exc: TrackingError) -> JSONResponse:
    status_code = next(
        (code for kind, code in ERROR_STATUS.items() if isinstance(exc, kind)),
        400,
    )
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TrackingError, tracking_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
