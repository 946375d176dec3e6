from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cancelflow.api.routes import router as api_router
from cancelflow.config import get_settings
from cancelflow.db.init import init_database
from cancelflow.errors import CancellationFlowError, FlowValidationError, UnexpectedError

logger = logging.getLogger(__name__)


def _request_field_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        errors.append({"field": ".".join(loc) or "body", "message": error.get("msg", "invalid value")})
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CancellationFlowError)
    async def _flow_error(request: Request, exc: CancellationFlowError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Request failed path=%s code=%s", request.url.path, exc.code)
            exc = UnexpectedError("Unexpected error occurred", code=exc.code)
        return JSONResponse(exc.to_payload(), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _request_invalid(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = FlowValidationError("Invalid request data", details=_request_field_errors(exc))
        return JSONResponse(error.to_payload(), status_code=error.status_code)

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error path=%s", request.url.path)
        error = UnexpectedError("Unexpected error occurred")
        return JSONResponse(error.to_payload(), status_code=error.status_code)


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(title=settings.app_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    register_exception_handlers(app)

    @app.on_event("startup")
    def _startup() -> None:
        init_database()

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(api_router)
    return app
