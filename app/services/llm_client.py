"""Thin Bedrock client wrapper for text and multimodal generation."""

from __future__ import annotations

import base64
import logging
from functools import lru_cache
from typing import Any, Optional

from fastapi.concurrency import run_in_threadpool

from app.application.interfaces import GenerativePort, InlineMedia, LlmInvocationError
from app.config.settings import settings
from app.services.aws import BotoCoreError, ClientError, create_boto3_client, is_transient_aws_error

logger = logging.getLogger(__name__)

_IMAGE_FORMATS = {
    "image/jpeg": "jpeg",
    "image/jpg": "jpeg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}

_VIDEO_FORMATS = {
    "video/mp4": "mp4",
    "video/quicktime": "mov",
    "video/x-matroska": "mkv",
    "video/webm": "webm",
    "video/x-flv": "flv",
    "video/mpeg": "mpeg",
    "video/x-ms-wmv": "wmv",
    "video/3gpp": "three_gp",
}


def _decode_bedrock_api_key(secret_value: Optional[str]) -> tuple[str, str] | None:
    """Decode the BEDROCK_API_KEY secret into access/secret key components."""

    if not secret_value:
        return None

    try:
        decoded_bytes = base64.b64decode(secret_value.strip())
    except ValueError:
        decoded_bytes = secret_value.encode("utf-8", "ignore")

    filtered = "".join(chr(b) for b in decoded_bytes if 31 < b < 127)
    if ":" not in filtered:
        return None
    access_key, secret_key = filtered.split(":", 1)
    return access_key, secret_key


def media_content_block(media: InlineMedia) -> dict[str, Any]:
    """Translate inline media into a Bedrock `converse` content block."""

    mime_type = media.mime_type.lower()
    if mime_type in _IMAGE_FORMATS:
        return {"image": {"format": _IMAGE_FORMATS[mime_type], "source": {"bytes": media.data}}}
    if mime_type in _VIDEO_FORMATS:
        return {"video": {"format": _VIDEO_FORMATS[mime_type], "source": {"bytes": media.data}}}
    raise LlmInvocationError(f"Unsupported inline media type: {media.mime_type}")


class BedrockLlmClient(GenerativePort):
    """Invoke Amazon Bedrock models with standard configuration."""

    def __init__(self, client: Any | None = None) -> None:
        self._model_id = settings.bedrock.model_id
        self._vision_model_id = settings.bedrock.vision_model_id or self._model_id
        self._video_model_id = settings.bedrock.video_model_id or self._model_id

        if client is not None:
            self._client = client
            return

        api_key_tuple = None
        if settings.bedrock.api_key:
            api_key_tuple = _decode_bedrock_api_key(
                settings.bedrock.api_key.get_secret_value()
            )

        self._client = create_boto3_client(
            "bedrock-runtime",
            region_name=settings.bedrock.region,
            aws_access_key_id=api_key_tuple[0] if api_key_tuple else None,
            aws_secret_access_key=api_key_tuple[1] if api_key_tuple else None,
        )

    def _model_for(self, media: InlineMedia | None) -> str:
        if media is None:
            return self._model_id
        if media.mime_type.lower().startswith("video/"):
            return self._video_model_id
        return self._vision_model_id

    async def generate(self, prompt: str, media: Optional[InlineMedia] = None) -> str:
        """Run a Bedrock `converse` call and return the aggregate text output."""

        content: list[dict[str, Any]] = []
        if media is not None:
            content.append(media_content_block(media))
        content.append({"text": prompt})

        target_model_id = self._model_for(media)
        inference_cfg = {
            "maxTokens": settings.bedrock.max_tokens,
            "temperature": settings.bedrock.temperature,
            "topP": settings.bedrock.top_p,
        }

        def _call() -> str:
            response = self._client.converse(
                modelId=target_model_id,
                messages=[{"role": "user", "content": content}],
                inferenceConfig=inference_cfg,
            )
            content_blocks = (
                response.get("output", {})
                .get("message", {})
                .get("content", [])
            )
            texts = [block.get("text", "") for block in content_blocks if block.get("text")]
            return "\n".join(texts).strip()

        try:
            result = await run_in_threadpool(_call)
        except (BotoCoreError, ClientError) as exc:
            raise LlmInvocationError(
                f"Bedrock converse failed ({target_model_id}): {exc}",
                transient=is_transient_aws_error(exc),
            ) from exc

        if not result:
            raise LlmInvocationError(f"Bedrock returned an empty response ({target_model_id}).")
        return result


@lru_cache(maxsize=1)
def get_llm_client() -> BedrockLlmClient:
    """Return the lazily-built Bedrock client shared by pipeline runs."""
    return BedrockLlmClient()


__all__ = ["BedrockLlmClient", "LlmInvocationError", "get_llm_client", "media_content_block"]
