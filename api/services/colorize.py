from collections.abc import Callable
from enum import Enum
from typing import Protocol

from loguru import logger

from api.config import settings
from api.models.colorize import BlueprintRecord, ColorizeResult, UploadedFile
from api.services.errors import ValidationError
from api.services.image_codec import (
    ALLOWED_TYPES,
    COLORED_CONTENT_TYPE,
    current_timestamp,
    decode_data_url,
    extension_for,
    object_paths,
    to_data_url,
)
from api.services.storage import ObjectStore, RecordStore


class ImageGenerator(Protocol):
    async def generate(self, data_url: str, prompt: str) -> str: ...


class Stage(str, Enum):
    VALIDATING = "validating"
    PERSISTING_ORIGINAL = "persisting_original"
    CALLING_AI = "calling_ai"
    DECODING_RESULT = "decoding_result"
    PERSISTING_RESULT = "persisting_result"
    RECORDING_METADATA = "recording_metadata"


def validate_upload(upload: UploadedFile | None) -> UploadedFile:
    if upload is None:
        raise ValidationError("No file provided")
    if upload.content_type not in ALLOWED_TYPES:
        raise ValidationError("Only PNG and JPEG files are allowed")
    return upload


class ColorizePipeline:
    """Runs one upload through storage, the AI gateway and the record store.

    Holds only its collaborators; every request's state lives in ``run`` locals,
    so one instance may serve concurrent requests.
    """

    def __init__(
        self,
        objects: ObjectStore,
        records: RecordStore,
        generator: ImageGenerator,
        clock: Callable[[], int] = current_timestamp,
        prompt: str | None = None,
    ):
        self._objects = objects
        self._records = records
        self._generator = generator
        self._clock = clock
        self._prompt = prompt or settings.colorize_prompt

    async def run(self, upload: UploadedFile | None) -> ColorizeResult:
        stage = Stage.VALIDATING
        try:
            upload = validate_upload(upload)
            timestamp = self._clock()
            original_path, colored_path = object_paths(timestamp, extension_for(upload.content_type))
            logger.info(
                "Colorize started filename={} content_type={} size_bytes={} timestamp={}",
                upload.filename,
                upload.content_type,
                upload.size_bytes,
                timestamp,
            )

            stage = Stage.PERSISTING_ORIGINAL
            original = await self._objects.put(original_path, upload.data, upload.content_type)

            stage = Stage.CALLING_AI
            generated_url = await self._generator.generate(
                to_data_url(upload.data, upload.content_type),
                self._prompt,
            )

            stage = Stage.DECODING_RESULT
            colored_bytes = decode_data_url(generated_url)
            logger.debug("Generated image decoded size_bytes={}", len(colored_bytes))

            stage = Stage.PERSISTING_RESULT
            colored = await self._objects.put(colored_path, colored_bytes, COLORED_CONTENT_TYPE)

            stage = Stage.RECORDING_METADATA
            record = BlueprintRecord(original_url=original.public_url, colored_url=colored.public_url)
            await self._records.insert(record)
        except Exception as exc:
            logger.error("Colorize failed stage={} error={}", stage.value, str(exc))
            raise

        logger.info(
            "Colorize finished original_path={} colored_path={}",
            original.path,
            colored.path,
        )
        return ColorizeResult(original_url=record.original_url, colored_url=record.colored_url)
