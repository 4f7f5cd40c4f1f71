import logging
import time
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException

from labscan.middleware.tracing import TRACE_ID_CTX_VAR

logger = logging.getLogger("labscan")


def status_to_code(status_code: int) -> str:
    mapping = {
        400: "BAD_REQUEST",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        413: "PAYLOAD_TOO_LARGE",
        415: "UNSUPPORTED_MEDIA_TYPE",
        422: "UNPROCESSABLE_ENTITY",
        429: "TOO_MANY_REQUESTS",
        500: "INTERNAL_SERVER_ERROR",
    }
    return mapping.get(status_code, f"HTTP_{status_code}")


def _trace_id(request: Request) -> str:
    return getattr(request.state, "trace_id", None) or TRACE_ID_CTX_VAR.get()


def error_body(status_code: int, message: str, request: Request, details: Any = None) -> dict:
    body = {"code": status_to_code(status_code), "message": message, "trace_id": _trace_id(request)}
    if details is not None:
        body["details"] = details
    return body


async def handle_http_exception(request: Request, exc: HTTPException):
    detail: Any = exc.detail
    message = detail if isinstance(detail, str) else "HTTP error"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, message, request, detail),
        headers=getattr(exc, "headers", None),
    )


async def handle_validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content=error_body(422, "Request validation failed", request, jsonable_encoder(exc.errors())),
    )


async def handle_rate_limit(request: Request, exc: RateLimitExceeded):
    try:
        retry_after = max(1, int(getattr(exc, "reset_time", time.time()) - time.time()))
    except (TypeError, ValueError):
        retry_after = 60
    logger.info({"function": "rate_limit", "path": str(request.url.path)})
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        headers={"Retry-After": str(retry_after)},
        content=error_body(429, "Too many requests. Please wait a bit and try again.", request),
    )


async def handle_unhandled_exception(request: Request, exc: Exception):
    logger.exception({"function": "unhandled_exception", "path": str(request.url.path)})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(500, "An unexpected error occurred", request, str(exc)),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(RateLimitExceeded, handle_rate_limit)
    app.add_exception_handler(Exception, handle_unhandled_exception)
