import base64

import pytest
from fastapi.testclient import TestClient

from api.config import settings
from api.main import app
from api.models.colorize import BlueprintRecord, StoredObject
from api.routes.colorize import get_pipeline
from api.services.colorize import ColorizePipeline
from api.services.errors import RecordError, UploadError

PUBLIC_BASE = "https://storage.example.test/blueprints"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + bytes(10_000)
JPEG_BYTES = b"\xff\xd8\xff\xe0" + bytes(2_000)
COLORED_BYTES = b"\x89PNG\r\n\x1a\ncolored-rendering"


class FakeObjectStore:
    def __init__(self, fail_prefix: str | None = None):
        self.fail_prefix = fail_prefix
        self.writes: list[tuple[str, bytes, str]] = []
        self.objects: dict[str, bytes] = {}

    async def put(self, path: str, data: bytes, content_type: str) -> StoredObject:
        if self.fail_prefix and path.startswith(self.fail_prefix):
            raise UploadError(f"Upload failed for {path}: bucket not found")
        if path in self.objects:
            raise UploadError(f"Upload failed for {path}: The resource already exists")
        self.objects[path] = data
        self.writes.append((path, data, content_type))
        return StoredObject(path=path, public_url=f"{PUBLIC_BASE}/{path}")


class FakeRecordStore:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.records: list[BlueprintRecord] = []

    async def insert(self, record: BlueprintRecord) -> None:
        if self.fail:
            raise RecordError("Database insert failed: relation does not exist")
        self.records.append(record)


class FakeGenerator:
    def __init__(self, output: bytes = COLORED_BYTES, error: Exception | None = None):
        self.output = output
        self.error = error
        self.raw_url: str | None = None
        self.calls: list[tuple[str, str]] = []

    async def generate(self, data_url: str, prompt: str) -> str:
        self.calls.append((data_url, prompt))
        if self.error is not None:
            raise self.error
        if self.raw_url is not None:
            return self.raw_url
        return "data:image/png;base64," + base64.b64encode(self.output).decode("utf-8")


class FixedClock:
    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


@pytest.fixture
def objects() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def records() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def pipeline(objects, records, generator) -> ColorizePipeline:
    return ColorizePipeline(objects=objects, records=records, generator=generator, clock=FixedClock())


@pytest.fixture
def client(pipeline, monkeypatch):
    monkeypatch.setattr(settings, "client_api_key", None)
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
