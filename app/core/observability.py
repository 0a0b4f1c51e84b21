import json
import logging
import time
import traceback
from contextvars import ContextVar
from http import HTTPStatus
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.config import settings

REQUEST_ID_HEADER = "X-Request-ID"
TIMEOUT_HINT_HEADER = "X-API-Timeout-Hint-Ms"

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")
logger = logging.getLogger("toystore.api")

_ERROR_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    409: "conflict",
    422: "validation_error",
    429: "rate_limited",
    500: "internal_error",
}


def setup_observability() -> None:
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, settings.log_level, logging.INFO))
    logger.propagate = False


def get_request_id() -> str:
    return request_id_ctx.get()


def log_event(event: str, *, level: int = logging.INFO, **fields) -> None:
    """Emit one JSON log line tagged with the current request id."""
    if not logger.isEnabledFor(level):
        return
    logger.log(
        level,
        json.dumps({"event": event, "request_id": get_request_id(), **fields}, default=str),
    )


def error_code_for_status(status_code: int) -> str:
    if status_code in _ERROR_CODES:
        return _ERROR_CODES[status_code]
    try:
        return HTTPStatus(status_code).phrase.lower().replace(" ", "_").replace("-", "_")
    except ValueError:
        return "http_error"


def _request_id_for(request: Request) -> str:
    return (
        getattr(request.state, "request_id", None)
        or request.headers.get(REQUEST_ID_HEADER)
        or get_request_id()
    )


def error_response(
    request: Request,
    *,
    status_code: int,
    message: str,
    details: list[dict] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = {
        "code": error_code_for_status(status_code),
        "message": message,
        "request_id": _request_id_for(request),
        "path": request.url.path,
        "details": details,
    }
    return JSONResponse(status_code=status_code, content={"error": body}, headers=headers)


async def request_logging_middleware(request: Request, call_next):
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
    request.state.request_id = request_id
    ctx_token = request_id_ctx.set(request_id)
    started = time.perf_counter()
    response = None
    try:
        response = await call_next(request)
    finally:
        log_event(
            "request",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code if response is not None else 500,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        request_id_ctx.reset(ctx_token)

    response.headers[REQUEST_ID_HEADER] = request_id
    response.headers[TIMEOUT_HINT_HEADER] = str(settings.api_timeout_hint_ms)
    return response


async def http_exception_handler(request: Request, exc: HTTPException):
    if isinstance(exc.detail, str):
        message, details = exc.detail, None
    else:
        message, details = "HTTP error", exc.detail
    return error_response(
        request,
        status_code=exc.status_code,
        message=message,
        details=details,
        headers=exc.headers,
    )


def _validation_issues(errors) -> list[dict]:
    issues = []
    for err in errors:
        location = [str(part) for part in err.get("loc", ()) if part != "body"]
        issues.append(
            {
                "field": ".".join(location) or "body",
                "message": err.get("msg", "Invalid value"),
                "type": err.get("type"),
            }
        )
    return issues


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(
        request,
        status_code=422,
        message="Validation failed",
        details=_validation_issues(exc.errors()),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    log_event(
        "unhandled_exception",
        level=logging.ERROR,
        path=request.url.path,
        error=repr(exc),
        traceback=traceback.format_exception(type(exc), exc, exc.__traceback__, limit=10),
    )
    return error_response(request, status_code=500, message="Internal server error")


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
