from __future__ import annotations

import shutil
import subprocess
import threading

import numpy as np
import pytest

from storyreel import encoder as encoder_mod
from storyreel.compositor import render_video
from storyreel.config import StudioConfig
from storyreel.encoder import FORMAT_PRIORITY, FFmpegEncoder, list_encoders, negotiate_format
from storyreel.errors import EncoderError, UnsupportedFormat
from storyreel.models import Scene

from fakes import make_pcm, make_png

ENCODERS_OUTPUT = b"""Encoders:
 V..... = Video
 A..... = Audio
 ------
 V....D libx264              libx264 H.264 / AVC / MPEG-4 AVC
 V....D libvpx               libvpx VP8
 A....D aac                  AAC (Advanced Audio Coding)
 A....D libvorbis            libvorbis
"""


def test_list_encoders_parses_capability_rows(monkeypatch):
    def fake_run(cmd, check, capture_output):
        return subprocess.CompletedProcess(cmd, 0, stdout=ENCODERS_OUTPUT, stderr=b"")

    monkeypatch.setattr(encoder_mod.subprocess, "run", fake_run)
    assert list_encoders("ffmpeg") == {"libx264", "libvpx", "aac", "libvorbis"}


def test_list_encoders_missing_binary(monkeypatch):
    def fake_run(cmd, check, capture_output):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(encoder_mod.subprocess, "run", fake_run)
    assert list_encoders("no-such-ffmpeg") == set()


def test_negotiate_follows_priority():
    assert negotiate_format({"libvpx-vp9", "libvpx", "libopus", "libx264", "aac"}).content_type == "video/webm; codecs=vp9"
    assert negotiate_format({"libvpx", "libopus"}).content_type == "video/webm; codecs=vp8"
    assert negotiate_format({"libvpx", "libvorbis", "aac"}).content_type == "video/webm"
    mp4 = negotiate_format({"libx264", "aac"})
    assert mp4.extension == "mp4"
    assert "frag_keyframe+empty_moov" in mp4.mux_args
    assert [f.extension for f in FORMAT_PRIORITY] == ["webm", "webm", "webm", "mp4"]


def test_negotiate_without_codecs_fails():
    with pytest.raises(UnsupportedFormat):
        negotiate_format(set())
    with pytest.raises(UnsupportedFormat):
        negotiate_format({"libvpx-vp9"})


@pytest.mark.anyio
async def test_writes_before_start_fail():
    enc = FFmpegEncoder(width=16, height=16, fps=30, sample_rate=24000)
    with pytest.raises(EncoderError):
        await enc.write_frame(b"\x00" * 16 * 16 * 3)
    with pytest.raises(EncoderError):
        await enc.stop()
    await enc.abort()


@pytest.mark.anyio
@pytest.mark.skipif(shutil.which("ffmpeg") is None, reason="ffmpeg not installed")
async def test_ffmpeg_end_to_end():
    if not _codecs_available():
        pytest.skip("ffmpeg lacks a supported codec pair")
    config = StudioConfig(width=64, height=112, fps=30)
    scenes = [
        Scene("one", "p1", image=make_png(value=40), audio=make_pcm(0.5)),
        Scene("two", "p2", image=make_png(value=220), audio=make_pcm(0.5)),
    ]
    output = await render_video(scenes, config=config)
    assert output.data
    assert output.extension in ("webm", "mp4")
    assert output.duration_sec == pytest.approx(1.6)


def _codecs_available() -> bool:
    try:
        negotiate_format(list_encoders("ffmpeg"))
    except UnsupportedFormat:
        return False
    return True


class _RecordingSoundFile:
    def __init__(self) -> None:
        self.threads = []
        self.blocks = []

    def write(self, samples) -> None:
        self.threads.append(threading.get_ident())
        self.blocks.append(len(samples))

    def close(self) -> None:
        pass


@pytest.mark.anyio
async def test_audio_blocks_written_off_event_loop():
    enc = FFmpegEncoder(width=16, height=16, fps=30, sample_rate=24000)
    sink = _RecordingSoundFile()
    enc._audio = sink
    await enc.write_audio(np.zeros((800, 1), dtype=np.float32))
    assert sink.blocks == [800]
    assert sink.threads[0] != threading.get_ident()
    await enc.abort()
    assert enc._audio is None
