import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth.credentials import UserDirectory, bootstrap_seed, seed_accounts
from .auth.rate_limit import SoftRateLimiter
from .config import Settings, get_settings
from .errors import (
    AppError,
    AuthError,
    ConflictError,
    InternalError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
    error_payload,
    resolve_error_code,
)
from .routers import auth, blood_requests, content, dashboard, users
from .storage import KeyValueStore, StorageError, build_store

log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()


def _resolve_log_level(value: str) -> int:
    level = logging.getLevelName(value)
    return level if isinstance(level, int) else logging.INFO


log_level = _resolve_log_level(log_level_name)

if not logging.getLogger().handlers:
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
logger = logging.getLogger("nss_admin")
logger.setLevel(log_level)

HEALTH_PROBE_KEY = "health_probe"

SAFE_HTTP_MESSAGES: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: ValidationError.message,
    status.HTTP_401_UNAUTHORIZED: AuthError.message,
    status.HTTP_403_FORBIDDEN: PermissionDenied.message,
    status.HTTP_404_NOT_FOUND: NotFoundError.message,
    status.HTTP_409_CONFLICT: ConflictError.message,
    status.HTTP_422_UNPROCESSABLE_ENTITY: ValidationError.message,
}


def _health_response(status_text: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": status_text})


def _log_error(request: Request, status_code: int, code: str, message: str, exc: Exception | None = None) -> None:
    request_id = request.headers.get("x-request-id")
    log_message = f"[{code}] path={request.url.path} request_id={request_id or 'n/a'} message={message}"
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(log_message, exc_info=exc)
    else:
        logger.warning(log_message)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_settings: Settings = app.state.settings
    logger.info("Starting application storage=%s", app_settings.storage_backend)
    if app_settings.debug:
        logger.warning("DEBUG=true, do not use in production")
    if app_settings.seed_demo_accounts:
        logger.warning("SEED_DEMO_ACCOUNTS=true, demo accounts use well-known passwords")

    seed_accounts(
        app.state.user_directory,
        bootstrap=bootstrap_seed(app_settings),
        include_demo=app_settings.seed_demo_accounts,
    )

    yield

    close = getattr(app.state.store, "close", None)
    if callable(close):
        close()
    logger.info("Application stopped")


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        _log_error(request, exc.status_code, exc.code, exc.message, exc)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(exc.code, exc.message, exc.details),
        )

    @app.exception_handler(HTTPException)
    async def handle_http_exception(
        request: Request, exc: HTTPException | StarletteHTTPException
    ) -> JSONResponse:
        safe_message = SAFE_HTTP_MESSAGES.get(
            exc.status_code,
            InternalError.message if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR else "Request failed",
        )
        detail = exc.detail
        detail_message = detail if isinstance(detail, str) else ""
        code = resolve_error_code(exc.status_code)
        _log_error(request, exc.status_code, code, detail_message.strip() or safe_message)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(code, safe_message, detail),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_starlette_http_exception(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return await handle_http_exception(request, exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        message = "Request validation failed"
        _log_error(request, status.HTTP_422_UNPROCESSABLE_ENTITY, ValidationError.code, message)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_payload(
                ValidationError.code,
                message,
                [{"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")} for err in exc.errors()],
            ),
        )

    @app.exception_handler(ValueError)
    async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:
        log_message = str(exc).strip() or "Invalid request"
        _log_error(request, status.HTTP_400_BAD_REQUEST, ValidationError.code, log_message)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_payload(ValidationError.code, "Invalid request", log_message),
        )

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError) -> JSONResponse:
        message = "Storage is unavailable"
        _log_error(request, status.HTTP_503_SERVICE_UNAVAILABLE, "STORAGE_UNAVAILABLE", message, exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=error_payload("STORAGE_UNAVAILABLE", message, None),
        )

    @app.exception_handler(Exception)
    async def handle_unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
        _log_error(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            InternalError.code,
            InternalError.message,
            exc,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_payload(InternalError.code, InternalError.message, None),
        )


def create_app(
    app_settings: Settings | None = None,
    store: KeyValueStore | None = None,
) -> FastAPI:
    app_settings = app_settings or get_settings()
    store = store if store is not None else build_store(app_settings)

    app = FastAPI(title=app_settings.app_name, debug=app_settings.debug, lifespan=lifespan)
    app.state.settings = app_settings
    app.state.store = store
    app.state.user_directory = UserDirectory(
        store, bootstrap_username=app_settings.bootstrap_username
    )
    app.state.login_rate_limiter = SoftRateLimiter(
        app_settings.login_max_attempts, app_settings.login_window_seconds
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "HEAD"],
        allow_headers=["authorization", "content-type"],
    )

    routers = [
        auth.router,
        dashboard.router,
        blood_requests.router,
        users.router,
        *content.routers,
    ]
    for router in routers:
        app.include_router(router)

    _register_exception_handlers(app)

    @app.get("/health", tags=["health"])
    def healthcheck() -> Response:
        try:
            app.state.store.read(HEALTH_PROBE_KEY, None)
        except StorageError as exc:
            logger.error("Healthcheck storage probe failed: %s", exc)
            return _health_response("error", status.HTTP_503_SERVICE_UNAVAILABLE)

        logger.debug("Healthcheck passed")
        return _health_response("ok", status.HTTP_200_OK)

    return app


app = create_app()
