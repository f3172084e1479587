"""
Scene-by-scene video recorder.

Each renderable scene is drawn once onto a fixed-size surface (cover fit,
centered, overflow cropped) and its narration is pushed to the encoder in
blocks of ``sample_rate / fps`` samples. After every block the surface is
pushed as many times as the audio clock requires, so a scene's video
segment is exactly as long as its narration.
"""
from __future__ import annotations

from enum import Enum
from typing import Callable, Optional, Protocol, Sequence

import anyio
from anyio import to_thread
import cv2
import numpy as np

from . import audio_codec
from .config import StudioConfig
from .encoder import ContainerFormat, FFmpegEncoder
from .errors import ImageLoadError, NoRenderableScenes
from .models import EncodedOutput, RenderPhase, RenderProgress, Scene, Waveform
from .run_logger import RunLogger

ProgressSink = Callable[[RenderProgress], None]


class RecorderState(str, Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    PLAYING_SCENE = "playing_scene"
    WAITING_BOUNDARY = "waiting_boundary"
    FINALIZING = "finalizing"
    DONE = "done"
    ABORTED = "aborted"


class Encoder(Protocol):
    format: Optional[ContainerFormat]

    def negotiate(self) -> ContainerFormat: ...

    async def start(self) -> None: ...

    async def write_frame(self, frame: bytes) -> None: ...

    async def write_audio(self, samples: np.ndarray) -> None: ...

    async def stop(self) -> bytes: ...

    async def abort(self) -> None: ...


EncoderFactory = Callable[[StudioConfig], Encoder]


def default_encoder_factory(config: StudioConfig) -> Encoder:
    return FFmpegEncoder(
        width=config.width,
        height=config.height,
        fps=config.fps,
        sample_rate=config.sample_rate,
        channels=config.channels,
        ffmpeg_bin=config.ffmpeg_bin,
        video_bitrate=config.video_bitrate,
    )


def load_image(data: bytes) -> np.ndarray:
    buf = np.frombuffer(data or b"", dtype=np.uint8)
    image = cv2.imdecode(buf, cv2.IMREAD_COLOR) if buf.size else None
    if image is None:
        raise ImageLoadError("could not decode scene image")
    return image


def cover_fit(img_w: int, img_h: int, width: int, height: int) -> tuple[float, int, int]:
    """Return (scale, scaled_w, scaled_h) so the image covers width x height."""
    scale = max(width / img_w, height / img_h)
    scaled_w = max(width, int(round(img_w * scale)))
    scaled_h = max(height, int(round(img_h * scale)))
    return scale, scaled_w, scaled_h


class Surface:
    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.pixels: Optional[np.ndarray] = np.zeros((height, width, 3), dtype=np.uint8)
        self._frame: Optional[bytes] = None

    def draw_cover(self, image: np.ndarray) -> None:
        img_h, img_w = image.shape[:2]
        _scale, scaled_w, scaled_h = cover_fit(img_w, img_h, self.width, self.height)
        resized = cv2.resize(image, (scaled_w, scaled_h), interpolation=cv2.INTER_AREA)
        x0 = (scaled_w - self.width) // 2
        y0 = (scaled_h - self.height) // 2
        self.pixels[:, :, :] = resized[y0 : y0 + self.height, x0 : x0 + self.width]
        self._frame = None

    def frame(self) -> bytes:
        if self._frame is None:
            self._frame = self.pixels.tobytes()
        return self._frame

    def release(self) -> None:
        self.pixels = None
        self._frame = None


class VideoRecorder:
    def __init__(
        self,
        config: Optional[StudioConfig] = None,
        encoder_factory: Optional[EncoderFactory] = None,
        logger: Optional[RunLogger] = None,
    ) -> None:
        self.config = config or StudioConfig()
        self.encoder_factory = encoder_factory or default_encoder_factory
        self.logger = logger
        self.state = RecorderState.IDLE
        self.samples_written = 0
        self.frames_written = 0

    async def render(
        self,
        scenes: Sequence[Scene],
        on_progress: Optional[ProgressSink] = None,
    ) -> EncodedOutput:
        total = len(scenes)
        if not any(scene.is_renderable for scene in scenes):
            raise NoRenderableScenes(total)

        cfg = self.config
        encoder = self.encoder_factory(cfg)
        # Probing ffmpeg blocks; keep it off the event loop.
        fmt = await to_thread.run_sync(encoder.negotiate)
        self._log(f"render_start:scenes={total}:format={fmt.content_type}")

        self.state = RecorderState.PREPARING
        self.samples_written = 0
        self.frames_written = 0
        surface = Surface(cfg.width, cfg.height)
        try:
            await encoder.start()
            rendered = 0
            for index, scene in enumerate(scenes):
                if not scene.is_renderable:
                    continue
                if rendered:
                    await self._push(encoder, surface, self._silence(cfg.scene_gap_ms))
                _emit(on_progress, RenderProgress(index + 1, total, RenderPhase.RENDERING))
                self.state = RecorderState.PLAYING_SCENE
                waveform = audio_codec.decode(scene.audio, cfg.sample_rate, cfg.channels)
                surface.draw_cover(load_image(scene.image))
                await self._push(encoder, surface, waveform)
                self.state = RecorderState.WAITING_BOUNDARY
                self._log(f"scene_done:{index}:{waveform.duration_sec:.3f}s")
                rendered += 1

            self.state = RecorderState.FINALIZING
            _emit(on_progress, RenderProgress(total, total, RenderPhase.FINALIZING))
            await self._push(encoder, surface, self._silence(cfg.tail_ms))
            await self._flush_frames(encoder, surface)
            data = await encoder.stop()
        except BaseException as err:
            self.state = RecorderState.ABORTED
            self._log(f"render_aborted:{type(err).__name__}: {err}")
            with anyio.CancelScope(shield=True):
                await encoder.abort()
            raise
        finally:
            surface.release()

        self.state = RecorderState.DONE
        duration = self.samples_written / float(cfg.sample_rate)
        self._log(f"render_done:{len(data)} bytes:{duration:.3f}s")
        return EncodedOutput(
            data=data,
            content_type=fmt.content_type,
            extension=fmt.extension,
            duration_sec=duration,
        )

    def _silence(self, duration_ms: int) -> Waveform:
        return audio_codec.silence(duration_ms / 1000.0, self.config.sample_rate, self.config.channels)

    async def _push(self, encoder: Encoder, surface: Surface, waveform: Waveform) -> None:
        cfg = self.config
        block = max(cfg.sample_rate // cfg.fps, 1)
        for start in range(0, waveform.frame_count, block):
            samples = waveform.samples[start : start + block]
            await encoder.write_audio(samples)
            self.samples_written += len(samples)
            due = (self.samples_written * cfg.fps) // cfg.sample_rate
            while self.frames_written < due:
                await encoder.write_frame(surface.frame())
                self.frames_written += 1

    async def _flush_frames(self, encoder: Encoder, surface: Surface) -> None:
        cfg = self.config
        due = -(-self.samples_written * cfg.fps // cfg.sample_rate)
        while self.frames_written < due:
            await encoder.write_frame(surface.frame())
            self.frames_written += 1

    def _log(self, message: str) -> None:
        if self.logger:
            self.logger.log(message)


def _emit(sink: Optional[ProgressSink], progress: RenderProgress) -> None:
    if sink is not None:
        sink(progress)


async def render_video(
    scenes: Sequence[Scene],
    on_progress: Optional[ProgressSink] = None,
    config: Optional[StudioConfig] = None,
    encoder_factory: Optional[EncoderFactory] = None,
    logger: Optional[RunLogger] = None,
) -> EncodedOutput:
    recorder = VideoRecorder(config=config, encoder_factory=encoder_factory, logger=logger)
    return await recorder.render(scenes, on_progress)
