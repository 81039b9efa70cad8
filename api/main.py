import sys
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from loguru import logger

from api.config import Settings, settings
from api.routes.colorize import error_response
from api.routes.colorize import router as colorize_router
from api.routes.health import router as health_router
from api.services.errors import ColorizeError

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def _configure_logging(app_settings: Settings) -> None:
    logger.configure(patcher=lambda record: record["extra"].setdefault("request_id", "-"))
    logger.remove()
    logger.add(
        sys.stderr,
        level=app_settings.log_level.upper(),
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | req={extra[request_id]} | {name}:{function}:{line} | {message}",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_settings = settings
    _configure_logging(app_settings)
    app.state.settings = app_settings
    logger.bind(request_id="-").info(
        "Starting app app_name={} debug={} log_level={} bucket={} model={}",
        app_settings.app_name,
        app_settings.debug,
        app_settings.log_level,
        app_settings.storage_bucket,
        app_settings.ai_model,
    )
    yield
    logger.bind(request_id="-").info("Shutting down app app_name={}", app_settings.app_name)


app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)

app.include_router(health_router)
app.include_router(colorize_router)


@app.exception_handler(ColorizeError)
async def handle_colorize_error(request: Request, exc: ColorizeError) -> JSONResponse:
    return error_response(exc)


@app.middleware("http")
async def add_cors_headers(request: Request, call_next) -> Response:
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


@app.middleware("http")
async def add_request_context(request: Request, call_next) -> Response:
    request_id = request.headers.get("x-request-id", str(uuid4()))
    start = time.perf_counter()
    with logger.contextualize(request_id=request_id):
        logger.info("Request start method={} path={}", request.method, request.url.path)
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Request failed method={} path={}", request.method, request.url.path)
            raise
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "Request finish method={} path={} status={} duration_ms={:.2f}",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
    response.headers["X-Request-ID"] = request_id
    return response
