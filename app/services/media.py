"""Scoped ffmpeg-derived media (audio track, sampled frames) for one pipeline run.

Every path handed out by :class:`TempMediaManager` is tracked and deleted
exactly once: explicitly through :meth:`TempMediaManager.release` or, for
whatever is left, when the ``async with`` scope exits, whatever the outcome
of the run was.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from uuid import uuid4

from fastapi.concurrency import run_in_threadpool

from app.config.settings import settings

logger = logging.getLogger(__name__)


class TempMediaManager:
    """Create and clean up transient media artifacts for a single job."""

    def __init__(
        self,
        *,
        sample_rate_hz: int | None = None,
        temp_root: str | None = None,
        ffmpeg_binary: str = "ffmpeg",
        ffmpeg_timeout: float | None = None,
    ) -> None:
        self._sample_rate_hz = sample_rate_hz or settings.transcribe.sample_rate_hz
        self._temp_root = temp_root if temp_root is not None else settings.pipeline.temp_dir
        self._ffmpeg = ffmpeg_binary
        self._ffmpeg_timeout = (
            ffmpeg_timeout if ffmpeg_timeout is not None else settings.pipeline.call_timeout_seconds
        )
        self._owned: dict[str, None] = {}
        self._workdir: Path | None = None

    async def __aenter__(self) -> "TempMediaManager":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self.release_all()
        return False

    @property
    def owned_paths(self) -> tuple[str, ...]:
        return tuple(self._owned)

    def _workspace(self) -> Path:
        if self._workdir is None:
            if self._temp_root:
                Path(self._temp_root).mkdir(parents=True, exist_ok=True)
            self._workdir = Path(tempfile.mkdtemp(prefix="video-job-", dir=self._temp_root))
        return self._workdir

    def _track(self, path: Path | str) -> str:
        key = str(path)
        self._owned[key] = None
        return key

    def adopt(self, path: str) -> str:
        """Take ownership of a file created elsewhere (e.g. the uploaded video)."""
        return self._track(path)

    def _run_ffmpeg(self, args: list[str]) -> bool:
        command = [self._ffmpeg, "-hide_banner", "-loglevel", "error", "-y", *args]
        try:
            subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=True,
                timeout=self._ffmpeg_timeout,
            )
        except subprocess.TimeoutExpired:
            logger.warning("ffmpeg killed after %ss: %s", self._ffmpeg_timeout, " ".join(args))
            return False
        except subprocess.CalledProcessError as exc:
            error_msg = exc.stderr.decode("utf-8", errors="replace") if exc.stderr else "No stderr"
            logger.warning("ffmpeg failed. stderr: %s", error_msg)
            return False
        except OSError as exc:
            logger.warning("ffmpeg could not be executed: %s", exc)
            return False
        return True

    async def extract_audio(self, video_path: str) -> str | None:
        """Extract the audio track as raw PCM s16le mono; None when there is none."""

        out_path = self._workspace() / f"audio-{uuid4().hex}.pcm"
        succeeded = await run_in_threadpool(
            self._run_ffmpeg,
            [
                "-i", video_path,
                "-vn",
                "-f", "s16le",
                "-ac", "1",
                "-ar", str(self._sample_rate_hz),
                str(out_path),
            ],
        )
        if out_path.exists():
            self._track(out_path)
        if not succeeded or not out_path.exists() or out_path.stat().st_size == 0:
            logger.warning("No audio extracted from %s", video_path)
            self.release(str(out_path))
            return None
        return str(out_path)

    async def sample_frames(
        self,
        video_path: str,
        interval_seconds: float,
        max_frames: int,
    ) -> list[str]:
        """Grab one JPEG every ``interval_seconds``, at most ``max_frames``, in time order."""

        if max_frames <= 0:
            return []

        frame_dir = self._workspace() / f"frames-{uuid4().hex}"
        frame_dir.mkdir(parents=True, exist_ok=True)
        succeeded = await run_in_threadpool(
            self._run_ffmpeg,
            [
                "-i", video_path,
                "-vf", f"fps=1/{max(0.01, float(interval_seconds))}",
                "-frames:v", str(int(max_frames)),
                str(frame_dir / "frame_%05d.jpg"),
            ],
        )
        frames = [self._track(path) for path in sorted(frame_dir.glob("frame_*.jpg"))]
        if not succeeded:
            self.release(*frames)
            return []

        usable = [path for path in frames if os.path.getsize(path) > 0]
        self.release(*(path for path in frames if path not in usable))
        return usable[:max_frames]

    def release(self, *paths: str) -> None:
        """Best-effort deletion of tracked paths; never raises."""

        for path in paths:
            if path not in self._owned:
                logger.debug("Ignoring release of untracked path %s", path)
                continue
            del self._owned[path]
            try:
                os.remove(path)
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.warning("Could not delete temp file %s: %s", path, exc)

    def release_all(self) -> None:
        self.release(*list(self._owned))
        if self._workdir is not None:
            try:
                shutil.rmtree(self._workdir)
            except FileNotFoundError:
                pass
            except OSError as exc:
                logger.warning("Could not delete temp directory %s: %s", self._workdir, exc)
            self._workdir = None


async def read_bytes(path: str) -> bytes:
    return await run_in_threadpool(Path(path).read_bytes)


__all__ = ["TempMediaManager", "read_bytes"]
