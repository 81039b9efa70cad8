import base64
import binascii
import time

from api.services.errors import MissingOutputError

ALLOWED_TYPES = {"image/png", "image/jpeg", "image/jpg"}
ORIGINALS_PREFIX = "originals"
COLORED_PREFIX = "colored"
COLORED_CONTENT_TYPE = "image/png"


def extension_for(content_type: str) -> str:
    return "png" if content_type == "image/png" else "jpg"


def current_timestamp() -> int:
    """Milliseconds since the epoch, shared by both object paths of one request."""
    return time.time_ns() // 1_000_000


def object_paths(timestamp: int, ext: str) -> tuple[str, str]:
    return f"{ORIGINALS_PREFIX}/{timestamp}.{ext}", f"{COLORED_PREFIX}/{timestamp}.png"


def to_data_url(data: bytes, content_type: str) -> str:
    b64 = base64.b64encode(data).decode("utf-8")
    return f"data:{content_type};base64,{b64}"


def decode_data_url(url: str) -> bytes:
    _, sep, payload = url.partition(",")
    if not sep or not payload:
        raise MissingOutputError("Generated image is not a base64 data URL")
    try:
        return base64.b64decode(payload)
    except (binascii.Error, ValueError) as exc:
        raise MissingOutputError(f"Generated image payload could not be decoded: {exc}") from exc
