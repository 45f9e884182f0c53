"""
Maps booking errors onto HTTP responses.

NotFound -> 404, InvalidInput -> 400, Conflict -> 409,
StorageError and anything unexpected -> 500 "operation failed".
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ticket_booking.core.exceptions import BookingError
from ticket_booking.core.logging import get_logger

logger = get_logger(__name__)


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("booking_error", error=exc.message, kind=type(exc).__name__, exc_info=exc)
    else:
        logger.info("booking_rejected", error=exc.message, kind=type(exc).__name__)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_error", error=str(exc), exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "operation failed"},
    )


EXCEPTION_HANDLERS = {
    BookingError: booking_error_handler,
    Exception: unhandled_error_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
