"""Amazon Rekognition text detection (OCR) for sampled video frames."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from fastapi.concurrency import run_in_threadpool

from app.application.interfaces import TextDetectionError, TextDetectionPort
from app.config.settings import settings
from app.services.aws import BotoCoreError, ClientError, create_boto3_client, is_transient_aws_error

logger = logging.getLogger(__name__)


class RekognitionTextDetector(TextDetectionPort):
    """Return the LINE-level text Rekognition finds in an image."""

    def __init__(self, client: Any | None = None, *, min_confidence: float | None = None) -> None:
        self._client = client or create_boto3_client(
            "rekognition",
            region_name=settings.rekognition.region or settings.aws.region,
        )
        self._min_confidence = (
            min_confidence if min_confidence is not None else settings.rekognition.min_confidence
        )

    async def detect_text(self, image_bytes: bytes) -> str:
        if not image_bytes:
            raise TextDetectionError("Image payload is empty.")

        try:
            response = await run_in_threadpool(
                self._client.detect_text,
                Image={"Bytes": image_bytes},
            )
        except (BotoCoreError, ClientError) as exc:
            raise TextDetectionError(
                f"Rekognition detect_text failed: {exc}",
                transient=is_transient_aws_error(exc),
            ) from exc

        lines = [
            detection.get("DetectedText", "").strip()
            for detection in response.get("TextDetections", [])
            if detection.get("Type") == "LINE"
            and float(detection.get("Confidence", 0.0)) >= self._min_confidence
        ]
        text = "\n".join(line for line in lines if line)
        logger.debug("Rekognition detected %s line(s)", len(lines))
        return text


@lru_cache(maxsize=1)
def get_text_detector() -> RekognitionTextDetector:
    """Return the lazily-built Rekognition adapter."""
    return RekognitionTextDetector()


__all__ = ["RekognitionTextDetector", "get_text_detector"]
