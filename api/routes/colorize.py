import secrets

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from loguru import logger
from starlette.datastructures import UploadFile

from api.config import settings
from api.models.colorize import ColorizeResult, ErrorResponse, UploadedFile
from api.services.ai_client import GenerationClient
from api.services.colorize import ColorizePipeline
from api.services.errors import AuthenticationError, ColorizeError
from api.services.storage import SupabaseObjectStore, SupabaseRecordStore

router = APIRouter(prefix="/colorize", tags=["colorize"])


def require_api_key(request: Request) -> None:
    expected = settings.client_api_key
    if not expected:
        return
    provided = request.headers.get("apikey") or ""
    if not secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Rejected request with invalid apikey path={}", request.url.path)
        raise AuthenticationError("Invalid API key")


def get_pipeline() -> ColorizePipeline:
    return ColorizePipeline(
        objects=SupabaseObjectStore(settings.storage_bucket),
        records=SupabaseRecordStore(settings.records_table),
        generator=GenerationClient(),
    )


def error_response(exc: Exception) -> JSONResponse:
    if isinstance(exc, ColorizeError):
        status_code, message = exc.status_code, exc.message
    else:
        status_code, message = 500, str(exc) or "Unknown error"
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


async def _read_upload(request: Request) -> UploadedFile | None:
    async with request.form() as form:
        item = form.get("file")
        if not item:
            return None
        if not isinstance(item, UploadFile):
            return UploadedFile(data=item.encode("utf-8"), content_type="")
        data = await item.read()
        return UploadedFile(data=data, content_type=item.content_type or "", filename=item.filename)


@router.options("")
async def colorize_preflight() -> Response:
    return Response(status_code=204)


@router.post(
    "",
    response_model=ColorizeResult,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    dependencies=[Depends(require_api_key)],
)
async def colorize(request: Request, pipeline: ColorizePipeline = Depends(get_pipeline)) -> Response:
    try:
        upload = await _read_upload(request)
        result = await pipeline.run(upload)
    except ColorizeError as exc:
        logger.warning("Colorize request rejected status={} error={}", exc.status_code, exc.message)
        return error_response(exc)
    except Exception as exc:
        logger.exception("Colorize request error error={}", str(exc))
        return error_response(exc)
    return JSONResponse(content=result.model_dump())
