# feedlens/exception_handling.py
from __future__ import annotations

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .errors import CorruptSettingsValue, FeedlensError
from .logging_setup import get_logger

# Keep a separate logger namespace for exceptions
logger = get_logger("feedlens.exceptions")


async def http_exception_handler(request: Request, exc: HTTPException):
    logger.exception(
        "HTTP_EXCEPTION",
        extra={"handled": True, "path": str(request.url.path), "status_code": exc.status_code},
    )
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code, headers=exc.headers)


async def domain_exception_handler(request: Request, exc: FeedlensError):
    # Validation-type errors are the caller's problem; log them without a traceback
    logger.warning(
        "DOMAIN_ERROR",
        extra={
            "handled": True,
            "path": str(request.url.path),
            "status_code": exc.status_code,
            "error": type(exc).__name__,
            "detail": str(exc),
        },
    )
    return JSONResponse({"detail": exc.to_dict()}, status_code=exc.status_code)


async def corrupt_settings_handler(request: Request, exc: CorruptSettingsValue):
    logger.exception(
        "CORRUPT_SETTINGS_VALUE",
        extra={"handled": False, "path": str(request.url.path), "field": exc.field, "scope": exc.scope},
    )
    return JSONResponse({"detail": "Internal Server Error"}, status_code=500)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "UNHANDLED_EXCEPTION",
        extra={"handled": False, "path": str(request.url.path)},
    )
    return JSONResponse({"detail": "Internal Server Error"}, status_code=500)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers in one place.
    Call from feedlens/main.py after creating the FastAPI app.
    """
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(CorruptSettingsValue, corrupt_settings_handler)
    app.add_exception_handler(FeedlensError, domain_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
