"""Exception handlers producing the JSON error envelope."""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.errors import AppError, ValidationFailedError
from app.schemas.auth import ErrorResponse

logger = logging.getLogger(__name__)


def _error_response(exc: AppError) -> JSONResponse:
    body = ErrorResponse(
        code=exc.code,
        message=exc.message,
        should_refresh=exc.should_refresh,
        should_logout=exc.should_logout,
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(by_alias=True))


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers for application errors, validation errors and unexpected faults."""

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        log_fn = logger.error if exc.status_code >= 500 else logger.warning
        log_fn(
            "Request failed: %s",
            exc.code,
            extra={
                "path": request.url.path,
                "method": request.method,
                "status_code": exc.status_code,
            },
        )
        response = _error_response(exc)
        if exc.clear_session:
            request.app.state.cookie_policy.clear_session_cookies(response)
        return response

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        err = ValidationFailedError()
        payload = ErrorResponse(code=err.code, message=err.message).model_dump(by_alias=True)
        # Raw input is left out so submitted passwords never echo back.
        payload["errors"] = jsonable_encoder(
            [{"loc": e["loc"], "msg": e["msg"], "type": e["type"]} for e in exc.errors()]
        )
        return JSONResponse(status_code=err.status_code, content=payload)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled error",
            extra={"path": request.url.path, "method": request.method},
        )
        payload: dict[str, object] = {
            "success": False,
            "code": "server_error",
            "message": "Internal Server Error",
        }
        if request.app.state.settings.APP_ENV == "development":
            payload["error"] = str(exc)
        return JSONResponse(status_code=500, content=payload)
