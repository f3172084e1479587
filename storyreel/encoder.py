"""
Incremental ffmpeg encoder fed with raw frames and PCM blocks.

Frames stream into an ffmpeg process as they are pushed; audio is written
block by block to a WAV alongside. ``stop()`` muxes both into the
negotiated container and collects the muxer's stdout chunk by chunk.
"""
from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from typing import List, Optional, Sequence, Set, Tuple

import anyio
from anyio import to_thread
from anyio.abc import Process
import numpy as np
import soundfile as sf

from .errors import EncoderError, UnsupportedFormat


@dataclass(frozen=True)
class ContainerFormat:
    content_type: str
    extension: str
    muxer: str
    video_codec: str
    audio_codec: str
    video_args: Tuple[str, ...] = ()
    mux_args: Tuple[str, ...] = ()


FORMAT_PRIORITY: Tuple[ContainerFormat, ...] = (
    ContainerFormat(
        "video/webm; codecs=vp9",
        "webm",
        "webm",
        "libvpx-vp9",
        "libopus",
        video_args=("-deadline", "realtime", "-cpu-used", "8", "-row-mt", "1"),
    ),
    ContainerFormat(
        "video/webm; codecs=vp8",
        "webm",
        "webm",
        "libvpx",
        "libopus",
        video_args=("-deadline", "realtime", "-cpu-used", "8"),
    ),
    ContainerFormat("video/webm", "webm", "webm", "libvpx", "libvorbis", video_args=("-deadline", "realtime")),
    ContainerFormat(
        "video/mp4",
        "mp4",
        "mp4",
        "libx264",
        "aac",
        video_args=("-preset", "veryfast"),
        mux_args=("-movflags", "frag_keyframe+empty_moov"),
    ),
)


def list_encoders(ffmpeg_bin: str = "ffmpeg") -> Set[str]:
    try:
        result = subprocess.run(
            [ffmpeg_bin, "-hide_banner", "-encoders"],
            check=True,
            capture_output=True,
        )
    except (OSError, subprocess.CalledProcessError):
        return set()
    names: Set[str] = set()
    for line in result.stdout.decode("utf-8", errors="ignore").splitlines():
        parts = line.split()
        # Capability flags look like "V....D" / "A....."; the legend rows end in "=".
        if len(parts) >= 2 and len(parts[0]) == 6 and parts[0][0] in "VAS" and parts[1] != "=":
            names.add(parts[1])
    return names


def negotiate_format(
    available: Set[str],
    priority: Sequence[ContainerFormat] = FORMAT_PRIORITY,
) -> ContainerFormat:
    for fmt in priority:
        if fmt.video_codec in available and fmt.audio_codec in available:
            return fmt
    raise UnsupportedFormat(
        "no supported container/codec among: " + ", ".join(f.content_type for f in priority)
    )


class FFmpegEncoder:
    def __init__(
        self,
        width: int,
        height: int,
        fps: int,
        sample_rate: int,
        channels: int = 1,
        ffmpeg_bin: Optional[str] = None,
        video_bitrate: str = "5M",
        priority: Sequence[ContainerFormat] = FORMAT_PRIORITY,
    ) -> None:
        self.width = width
        self.height = height
        self.fps = fps
        self.sample_rate = sample_rate
        self.channels = channels
        self.ffmpeg_bin = ffmpeg_bin or os.getenv("FFMPEG_BIN", "ffmpeg")
        self.video_bitrate = video_bitrate
        self.priority = tuple(priority)
        self.format: Optional[ContainerFormat] = None
        self._tmpdir: Optional[str] = None
        self._proc: Optional[Process] = None
        self._audio: Optional[sf.SoundFile] = None
        self._stderr = None

    def negotiate(self) -> ContainerFormat:
        self.format = negotiate_format(list_encoders(self.ffmpeg_bin), self.priority)
        return self.format

    @property
    def _video_path(self) -> str:
        return os.path.join(self._tmpdir or "", "video.mkv")

    @property
    def _audio_path(self) -> str:
        return os.path.join(self._tmpdir or "", "audio.wav")

    @property
    def _log_path(self) -> str:
        return os.path.join(self._tmpdir or "", "ffmpeg.log")

    async def start(self) -> None:
        fmt = self.format or self.negotiate()
        self._tmpdir = tempfile.mkdtemp(prefix="storyreel-")
        self._audio = sf.SoundFile(
            self._audio_path,
            mode="w",
            samplerate=self.sample_rate,
            channels=self.channels,
            subtype="PCM_16",
            format="WAV",
        )
        self._stderr = open(self._log_path, "ab")
        cmd = [
            self.ffmpeg_bin,
            "-y",
            "-loglevel",
            "error",
            "-f",
            "rawvideo",
            "-pix_fmt",
            "bgr24",
            "-s",
            f"{self.width}x{self.height}",
            "-r",
            str(self.fps),
            "-i",
            "pipe:0",
            "-c:v",
            fmt.video_codec,
            "-b:v",
            self.video_bitrate,
            *fmt.video_args,
            "-pix_fmt",
            "yuv420p",
            self._video_path,
        ]
        self._proc = await anyio.open_process(
            cmd,
            stdin=subprocess.PIPE,
            stdout=subprocess.DEVNULL,
            stderr=self._stderr,
        )

    async def write_frame(self, frame: bytes) -> None:
        if self._proc is None or self._proc.stdin is None:
            raise EncoderError({"stage": "write_frame", "error": "encoder not started"})
        await self._proc.stdin.send(frame)

    async def write_audio(self, samples: np.ndarray) -> None:
        if self._audio is None:
            raise EncoderError({"stage": "write_audio", "error": "encoder not started"})
        await to_thread.run_sync(self._audio.write, samples)

    async def stop(self) -> bytes:
        """Finish the video stream, mux with audio and return the container bytes."""
        if self._proc is None or self.format is None:
            raise EncoderError({"stage": "stop", "error": "encoder not started"})
        fmt = self.format
        try:
            await self._proc.stdin.aclose()
            returncode = await self._proc.wait()
            self._proc = None
            if returncode != 0:
                raise EncoderError({"stage": "video", "returncode": returncode, "stderr": self._stderr_tail()})
            self._audio.close()
            self._audio = None

            cmd = [
                self.ffmpeg_bin,
                "-loglevel",
                "error",
                "-i",
                self._video_path,
                "-i",
                self._audio_path,
                "-map",
                "0:v",
                "-map",
                "1:a",
                "-c:v",
                "copy",
                "-c:a",
                fmt.audio_codec,
                "-ar",
                "48000",
                *fmt.mux_args,
                "-f",
                fmt.muxer,
                "pipe:1",
            ]
            chunks: List[bytes] = []
            async with await anyio.open_process(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=self._stderr,
            ) as mux:
                async for chunk in mux.stdout:
                    chunks.append(chunk)
                returncode = await mux.wait()
            if returncode != 0:
                raise EncoderError({"stage": "mux", "returncode": returncode, "stderr": self._stderr_tail()})
            return b"".join(chunks)
        finally:
            await self.abort()

    async def abort(self) -> None:
        """Kill the encoder and discard everything captured so far."""
        if self._proc is not None:
            if self._proc.returncode is None:
                try:
                    self._proc.kill()
                except ProcessLookupError:
                    pass
            await self._proc.aclose()
            self._proc = None
        if self._audio is not None:
            self._audio.close()
            self._audio = None
        if self._stderr is not None:
            self._stderr.close()
            self._stderr = None
        if self._tmpdir:
            shutil.rmtree(self._tmpdir, ignore_errors=True)
            self._tmpdir = None

    def _stderr_tail(self) -> str:
        try:
            with open(self._log_path, "rb") as f:
                return f.read()[-2000:].decode("utf-8", errors="replace")
        except OSError:
            return ""
