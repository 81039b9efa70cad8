from typing import Any

import httpx
from loguru import logger
from openai import APIConnectionError, APIStatusError, AsyncOpenAI
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError

from api.config import settings
from api.services.errors import AIRequestError, ConfigurationError, MissingOutputError


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore")


class GeneratedImageURL(_Lenient):
    url: str = Field(min_length=1)


class GeneratedImage(_Lenient):
    image_url: GeneratedImageURL


class GeneratedMessage(_Lenient):
    images: list[GeneratedImage] = Field(min_length=1)


class GenerationChoice(_Lenient):
    message: GeneratedMessage


class GenerationPayload(_Lenient):
    """Subset of the gateway response carrying the generated image."""

    choices: list[GenerationChoice] = Field(min_length=1)

    @property
    def image_url(self) -> str:
        return self.choices[0].message.images[0].image_url.url


def _build_client(http_client: httpx.AsyncClient | None = None) -> AsyncOpenAI:
    return AsyncOpenAI(
        api_key=settings.ai_api_key,
        base_url=settings.ai_gateway_url,
        timeout=settings.ai_timeout_seconds,
        max_retries=settings.ai_max_retries,
        http_client=http_client,
    )


def extract_image_url(payload: dict[str, Any]) -> str:
    try:
        return GenerationPayload.model_validate(payload).image_url
    except SchemaError as exc:
        logger.error("AI response missing generated image error_count={}", exc.error_count())
        raise MissingOutputError("No image returned from AI") from exc


class GenerationClient:
    def __init__(self, http_client: httpx.AsyncClient | None = None):
        self._http_client = http_client

    async def generate(self, data_url: str, prompt: str) -> str:
        """Send one image plus instruction to the gateway and return the generated image's data URL."""
        if not settings.ai_api_key:
            logger.error("AI key missing; failing generation model={}", settings.ai_model)
            raise ConfigurationError("AI generation unavailable: AI_API_KEY is not configured")

        content: list[dict[str, Any]] = [
            {"type": "text", "text": prompt},
            {"type": "image_url", "image_url": {"url": data_url}},
        ]
        try:
            logger.info(
                "Calling AI gateway model={} payload_chars={}",
                settings.ai_model,
                len(data_url),
            )
            async with _build_client(self._http_client) as client:
                response = await client.chat.completions.create(
                    model=settings.ai_model,
                    messages=[{"role": "user", "content": content}],
                    modalities=["image", "text"],
                )
        except APIStatusError as exc:
            logger.error(
                "AI gateway returned error status={} body={}",
                exc.status_code,
                exc.response.text,
            )
            raise AIRequestError(f"AI request failed: {exc.response.text}") from exc
        except APIConnectionError as exc:
            logger.error("AI gateway unreachable error={}", str(exc))
            raise AIRequestError(f"AI request failed: {exc}") from exc

        image_url = extract_image_url(response.model_dump())
        logger.info("AI generation success model={} image_chars={}", settings.ai_model, len(image_url))
        return image_url
