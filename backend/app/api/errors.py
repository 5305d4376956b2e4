import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from ..core.errors import ServiceError

logger = logging.getLogger(__name__)


def _envelope(status_code: int, message: str, code: str, errors=None, headers=None) -> JSONResponse:
    body = {"success": False, "message": message, "code": code}
    if errors is not None:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return _envelope(exc.status_code, exc.message, exc.code, exc.errors)


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _envelope(
        exc.status_code,
        str(exc.detail),
        "http_error",
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    field_errors: dict[str, list[str]] = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field_errors.setdefault(".".join(location) or "request", []).append(error.get("msg", ""))
    return _envelope(status.HTTP_400_BAD_REQUEST, "Validation failed", "validation_failed", field_errors)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error",
        extra={"path": request.url.path, "method": request.method},
    )
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", "internal_error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
