import asyncio
from typing import Protocol

from loguru import logger
from supabase import Client, create_client

from api.config import settings
from api.models.colorize import BlueprintRecord, StoredObject
from api.services.errors import ConfigurationError, RecordError, UploadError


class ObjectStore(Protocol):
    async def put(self, path: str, data: bytes, content_type: str) -> StoredObject: ...


class RecordStore(Protocol):
    async def insert(self, record: BlueprintRecord) -> None: ...


class SupabaseClient:
    """Process-wide supabase client, created on first use."""

    _instance: Client | None = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._instance is None:
            if not settings.supabase_url:
                raise ConfigurationError("Storage unavailable: SUPABASE_URL is not configured")
            if not settings.supabase_service_role_key:
                raise ConfigurationError("Storage unavailable: SUPABASE_SERVICE_ROLE_KEY is not configured")
            cls._instance = create_client(settings.supabase_url, settings.supabase_service_role_key)
            logger.info("Supabase client initialized url={}", settings.supabase_url)
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None


class SupabaseObjectStore:
    def __init__(self, bucket: str, client: Client | None = None):
        self._client = client
        self._bucket = bucket

    def _upload(self, client: Client, path: str, data: bytes, content_type: str) -> str:
        bucket = client.storage.from_(self._bucket)
        bucket.upload(
            path=path,
            file=data,
            file_options={"content-type": content_type},
        )
        return bucket.get_public_url(path)

    async def put(self, path: str, data: bytes, content_type: str) -> StoredObject:
        client = self._client or SupabaseClient.get_client()
        try:
            public_url = await asyncio.to_thread(self._upload, client, path, data, content_type)
        except Exception as exc:
            logger.error(
                "Storage upload failed bucket={} path={} error={}",
                self._bucket,
                path,
                str(exc),
            )
            raise UploadError(f"Upload failed for {path}: {exc}") from exc
        logger.debug(
            "Object stored bucket={} path={} content_type={} size_bytes={}",
            self._bucket,
            path,
            content_type,
            len(data),
        )
        return StoredObject(path=path, public_url=public_url)


class SupabaseRecordStore:
    def __init__(self, table: str, client: Client | None = None):
        self._client = client
        self._table = table

    def _insert(self, client: Client, record: BlueprintRecord) -> None:
        client.table(self._table).insert(record.model_dump()).execute()

    async def insert(self, record: BlueprintRecord) -> None:
        client = self._client or SupabaseClient.get_client()
        try:
            await asyncio.to_thread(self._insert, client, record)
        except Exception as exc:
            logger.error("Record insert failed table={} error={}", self._table, str(exc))
            raise RecordError(f"Database insert failed: {exc}") from exc
        logger.debug("Record inserted table={} colored_url={}", self._table, record.colored_url)
