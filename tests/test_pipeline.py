import base64

import pytest
from loguru import logger

from api.models.colorize import UploadedFile
from api.services.colorize import ColorizePipeline, validate_upload
from api.services.errors import AIRequestError, MissingOutputError, RecordError, UploadError, ValidationError
from tests.conftest import COLORED_BYTES, PNG_BYTES, FakeObjectStore, FakeRecordStore, FixedClock


def _png() -> UploadedFile:
    return UploadedFile(data=PNG_BYTES, content_type="image/png", filename="plan.png")


async def test_paths_share_timestamp(pipeline, objects):
    result = await pipeline.run(_png())

    original_path, colored_path = [w[0] for w in objects.writes]
    assert original_path == "originals/1700000000001.png"
    assert colored_path == "colored/1700000000001.png"
    assert result.original_url.endswith(original_path)
    assert result.colored_url.endswith(colored_path)


async def test_colored_bytes_are_decoded_generator_output(pipeline, objects):
    await pipeline.run(_png())

    assert objects.writes[1][1] == COLORED_BYTES


async def test_generator_receives_data_url_and_prompt(pipeline, generator):
    await pipeline.run(_png())

    data_url, prompt = generator.calls[0]
    header, payload = data_url.split(",", 1)
    assert header == "data:image/png;base64"
    assert base64.b64decode(payload) == PNG_BYTES
    assert "Preserve exact structure" in prompt


async def test_distinct_requests_get_distinct_paths(pipeline, objects):
    await pipeline.run(_png())
    await pipeline.run(_png())

    originals = [w[0] for w in objects.writes if w[0].startswith("originals/")]
    assert len(originals) == 2
    assert len(set(originals)) == 2


@pytest.mark.parametrize(
    "upload, message",
    [
        (None, "No file provided"),
        (UploadedFile(data=b"GIF89a", content_type="image/gif"), "Only PNG and JPEG files are allowed"),
        (UploadedFile(data=b"", content_type=""), "Only PNG and JPEG files are allowed"),
    ],
)
def test_validate_upload_rejects(upload, message):
    with pytest.raises(ValidationError) as exc_info:
        validate_upload(upload)
    assert exc_info.value.message == message
    assert exc_info.value.status_code == 400


def test_validate_upload_accepts_jpg_alias():
    upload = UploadedFile(data=b"\xff\xd8", content_type="image/jpg")
    assert validate_upload(upload) is upload


async def test_original_upload_failure_stops_pipeline(records, generator):
    objects = FakeObjectStore(fail_prefix="originals/")
    pipeline = ColorizePipeline(objects, records, generator, clock=FixedClock())

    with pytest.raises(UploadError):
        await pipeline.run(_png())
    assert generator.calls == []
    assert records.records == []


async def test_colored_upload_failure_skips_record(records, generator):
    objects = FakeObjectStore(fail_prefix="colored/")
    pipeline = ColorizePipeline(objects, records, generator, clock=FixedClock())

    with pytest.raises(UploadError, match="colored/"):
        await pipeline.run(_png())
    assert [w[0].split("/")[0] for w in objects.writes] == ["originals"]
    assert records.records == []


async def test_ai_failure_leaves_original_stored(pipeline, objects, records, generator):
    generator.error = AIRequestError("AI request failed: overloaded")

    with pytest.raises(AIRequestError):
        await pipeline.run(_png())
    assert len(objects.writes) == 1
    assert records.records == []


async def test_missing_output_is_terminal(pipeline, objects, generator):
    generator.error = MissingOutputError("No image returned from AI")

    with pytest.raises(MissingOutputError):
        await pipeline.run(_png())
    assert len(objects.writes) == 1


async def test_record_failure_surfaces(objects, generator):
    pipeline = ColorizePipeline(objects, FakeRecordStore(fail=True), generator, clock=FixedClock())

    with pytest.raises(RecordError):
        await pipeline.run(_png())
    assert len(objects.writes) == 2


async def test_same_millisecond_request_does_not_replace_first_upload(objects, records, generator):
    pipeline = ColorizePipeline(objects, records, generator, clock=lambda: 1000)
    first = UploadedFile(data=b"\x89PNG-user-A", content_type="image/png")
    second = UploadedFile(data=b"\x89PNG-user-B", content_type="image/png")

    await pipeline.run(first)
    with pytest.raises(UploadError, match="already exists"):
        await pipeline.run(second)

    assert objects.objects["originals/1000.png"] == b"\x89PNG-user-A"
    assert objects.objects["colored/1000.png"] == COLORED_BYTES
    assert len(records.records) == 1
    assert records.records[0].original_url.endswith("originals/1000.png")


async def test_failure_logged_at_error_with_stage(pipeline, generator):
    captured = []
    sink_id = logger.add(lambda message: captured.append(message.record), level="ERROR")
    generator.error = AIRequestError("AI request failed: overloaded")
    try:
        with pytest.raises(AIRequestError):
            await pipeline.run(_png())
    finally:
        logger.remove(sink_id)

    assert any(r["level"].name == "ERROR" and "stage=calling_ai" in r["message"] for r in captured)
