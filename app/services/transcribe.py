"""Amazon Transcribe integration helpers using Streaming API."""

from __future__ import annotations

import asyncio
import logging
import os
from functools import lru_cache

from amazon_transcribe.client import TranscribeStreamingClient
from amazon_transcribe.exceptions import (
    InternalFailureException,
    LimitExceededException,
    ServiceUnavailableException,
)
from amazon_transcribe.handlers import TranscriptResultStreamHandler
from amazon_transcribe.model import TranscriptEvent

from app.application.interfaces import TranscriptionError, TranscriptionPort
from app.config.settings import settings

logger = logging.getLogger(__name__)

_TRANSIENT_STREAM_ERRORS = (
    InternalFailureException,
    LimitExceededException,
    ServiceUnavailableException,
)


class TranscribeService(TranscriptionPort):
    """Stream raw 16-bit mono PCM to Amazon Transcribe and collect the final text."""

    def __init__(
        self,
        region: str,
        chunk_size: int = 8192,
        realtime_pacing: bool = False,
    ) -> None:
        self._region = region
        self._chunk_size = chunk_size
        self._realtime_pacing = realtime_pacing

        # Ensure credentials are available to the SDK
        if settings.aws.access_key:
            os.environ.setdefault("AWS_ACCESS_KEY_ID", settings.aws.access_key)
        if settings.aws.secret_key:
            os.environ.setdefault("AWS_SECRET_ACCESS_KEY", settings.aws.secret_key)

        self._client = TranscribeStreamingClient(region=region)

    async def transcribe(
        self,
        audio_bytes: bytes,
        sample_rate_hz: int,
        language_code: str,
    ) -> str:
        """Stream audio to Transcribe and return the full transcript."""

        if not audio_bytes:
            raise TranscriptionError("The audio payload is empty.")

        try:
            stream = await self._client.start_stream_transcription(
                language_code=language_code,
                media_sample_rate_hz=sample_rate_hz,
                media_encoding="pcm",
            )
        except _TRANSIENT_STREAM_ERRORS as exc:
            raise TranscriptionError(f"Transcribe unavailable: {exc}", transient=True) from exc
        except Exception as exc:
            raise TranscriptionError(f"Could not start transcription stream: {exc}") from exc

        handler = _SimpleTranscriptHandler(stream.output_stream)

        async def write_chunks():
            # 16-bit samples: two bytes per sample.
            bytes_per_sec = sample_rate_hz * 2
            sleep_time = self._chunk_size / bytes_per_sec if self._realtime_pacing else 0

            logger.info(
                "Starting stream. Total bytes: %s. Chunk size: %s. Sleep: %.4fs",
                len(audio_bytes),
                self._chunk_size,
                sleep_time,
            )

            for i in range(0, len(audio_bytes), self._chunk_size):
                chunk = audio_bytes[i : i + self._chunk_size]
                await stream.input_stream.send_audio_event(audio_chunk=chunk)
                if sleep_time:
                    await asyncio.sleep(sleep_time)

            await stream.input_stream.end_stream()

        try:
            await asyncio.gather(write_chunks(), handler.handle_events())
        except _TRANSIENT_STREAM_ERRORS as exc:
            raise TranscriptionError(f"Streaming transcription interrupted: {exc}", transient=True) from exc
        except Exception as exc:
            logger.error("Streaming loop failed: %s", exc)
            raise TranscriptionError(f"Streaming transcription failed: {exc}") from exc

        transcript = handler.transcript.strip()
        logger.info("Transcription complete. Length: %s", len(transcript))
        return transcript


class _SimpleTranscriptHandler(TranscriptResultStreamHandler):
    def __init__(self, transcript_result_stream):
        super().__init__(transcript_result_stream)
        self.transcript = ""

    async def handle_transcript_event(self, transcript_event: TranscriptEvent):
        results = transcript_event.transcript.results
        for result in results:
            if not result.is_partial and result.alternatives:
                self.transcript += result.alternatives[0].transcript + " "


@lru_cache(maxsize=1)
def get_transcribe_service() -> TranscribeService:
    """Return a lazily-instantiated transcribe service singleton."""
    return TranscribeService(
        region=settings.transcribe.region or settings.aws.region,
        chunk_size=settings.transcribe.chunk_size,
        realtime_pacing=settings.transcribe.realtime_pacing,
    )


__all__ = ["TranscribeService", "TranscriptionError", "get_transcribe_service"]
