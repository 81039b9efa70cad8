from pydantic import BaseModel, ConfigDict, Field


class UploadedFile(BaseModel):
    data: bytes
    content_type: str
    filename: str | None = None

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class StoredObject(BaseModel):
    path: str
    public_url: str


class BlueprintRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    original_url: str
    colored_url: str


class ColorizeResult(BaseModel):
    original_url: str = Field(min_length=1)
    colored_url: str = Field(min_length=1)


class ErrorResponse(BaseModel):
    error: str
