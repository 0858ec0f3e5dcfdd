"""Temp media bookkeeping: every artifact is deleted exactly once."""

from __future__ import annotations

import os
import time
from pathlib import Path

import pytest

from app.services.media import TempMediaManager

from conftest import FakeFfmpegMediaManager


@pytest.mark.anyio
async def test_extract_audio_tracks_and_releases(tmp_path: Path, video_file: Path):
    manager = FakeFfmpegMediaManager(temp_root=str(tmp_path / "work"))

    audio_path = await manager.extract_audio(str(video_file))

    assert audio_path is not None and os.path.exists(audio_path)
    assert audio_path in manager.owned_paths

    manager.release(audio_path)
    manager.release(audio_path)

    assert not os.path.exists(audio_path)
    assert manager.owned_paths == ()


@pytest.mark.anyio
async def test_missing_audio_track_returns_none(tmp_path: Path, video_file: Path):
    manager = FakeFfmpegMediaManager(temp_root=str(tmp_path / "work"), audio=False)

    assert await manager.extract_audio(str(video_file)) is None
    assert manager.owned_paths == ()


@pytest.mark.anyio
async def test_sample_frames_respects_limit_and_order(tmp_path: Path, video_file: Path):
    manager = FakeFfmpegMediaManager(temp_root=str(tmp_path / "work"), frames=8)

    frames = await manager.sample_frames(str(video_file), interval_seconds=2, max_frames=5)

    assert len(frames) == 5
    assert frames == sorted(frames)
    assert all(os.path.exists(frame) for frame in frames)


@pytest.mark.anyio
async def test_zero_frames_requested_runs_nothing(tmp_path: Path, video_file: Path):
    manager = FakeFfmpegMediaManager(temp_root=str(tmp_path / "work"))

    assert await manager.sample_frames(str(video_file), interval_seconds=1, max_frames=0) == []
    assert manager.created == []


@pytest.mark.anyio
async def test_scope_exit_removes_everything_even_on_error(tmp_path: Path, video_file: Path):
    work = tmp_path / "work"
    manager = FakeFfmpegMediaManager(temp_root=str(work))

    with pytest.raises(RuntimeError):
        async with manager:
            manager.adopt(str(video_file))
            await manager.extract_audio(str(video_file))
            await manager.sample_frames(str(video_file), interval_seconds=1, max_frames=3)
            raise RuntimeError("stage exploded")

    assert manager.created
    assert not any(os.path.exists(path) for path in manager.created)
    assert not video_file.exists()
    assert list(work.iterdir()) == []


def test_release_ignores_untracked_paths(tmp_path: Path):
    outsider = tmp_path / "keep.txt"
    outsider.write_text("keep")
    manager = TempMediaManager(temp_root=str(tmp_path / "work"))

    manager.release(str(outsider))

    assert outsider.exists()


def test_release_tolerates_already_deleted_files(tmp_path: Path):
    target = tmp_path / "gone.bin"
    target.write_bytes(b"x")
    manager = TempMediaManager(temp_root=str(tmp_path / "work"))
    manager.adopt(str(target))
    target.unlink()

    manager.release_all()

    assert manager.owned_paths == ()


@pytest.mark.anyio
async def test_failed_ffmpeg_leaves_no_frames(tmp_path: Path, video_file: Path, monkeypatch):
    manager = FakeFfmpegMediaManager(temp_root=str(tmp_path / "work"), frames=3)
    real_run = FakeFfmpegMediaManager._run_ffmpeg

    def partial_then_fail(self, args):
        real_run(self, args)
        return False

    monkeypatch.setattr(FakeFfmpegMediaManager, "_run_ffmpeg", partial_then_fail)

    assert await manager.sample_frames(str(video_file), interval_seconds=1, max_frames=3) == []
    assert manager.owned_paths == ()
    assert not any(os.path.exists(path) for path in manager.created)


def test_missing_ffmpeg_binary_is_reported_as_failure(tmp_path: Path):
    manager = TempMediaManager(temp_root=str(tmp_path), ffmpeg_binary=str(tmp_path / "no-ffmpeg"))

    assert manager._run_ffmpeg(["-version"]) is False


@pytest.fixture
def hanging_ffmpeg(tmp_path: Path) -> str:
    script = tmp_path / "ffmpeg-hangs"
    script.write_text("#!/bin/sh\nexec sleep 30\n")
    script.chmod(0o755)
    return str(script)


@pytest.mark.anyio
async def test_hung_ffmpeg_is_killed_and_treated_as_no_audio(tmp_path: Path, video_file: Path, hanging_ffmpeg):
    manager = TempMediaManager(
        temp_root=str(tmp_path / "work"),
        ffmpeg_binary=hanging_ffmpeg,
        ffmpeg_timeout=0.2,
    )
    started = time.monotonic()

    async with manager:
        audio_path = await manager.extract_audio(str(video_file))
        frames = await manager.sample_frames(str(video_file), interval_seconds=1, max_frames=2)

    assert audio_path is None
    assert frames == []
    assert time.monotonic() - started < 10
    assert manager.owned_paths == ()
