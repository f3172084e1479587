"""Storyboard studio: scene generation, continuity, narration and render."""
from __future__ import annotations

import os
import zipfile
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Set, Tuple, TypeVar

import anyio

from . import audio_codec, prompts
from .compositor import EncoderFactory, ProgressSink, VideoRecorder
from .config import StudioConfig
from .continuity import ImageResult, generate_missing_images, select_reference
from .credentials import CredentialPool
from .errors import EmptyGenerationError, MissingCredentialError
from .models import CharacterPresence, EncodedOutput, Scene
from .resilience import format_exception, with_retry
from .run_logger import RunLogger
from .styles import narration_style, visual_style

T = TypeVar("T")


class GenerationBackend(Protocol):
    def has_credential(self, credential: Optional[str]) -> bool: ...

    async def speech(self, text: str, voice: str, style_prompt: str, credential: Optional[str]) -> Optional[bytes]: ...

    async def image(self, prompt: str, reference: Optional[bytes], credential: Optional[str]) -> Optional[bytes]: ...

    async def character_presence(self, image: bytes, credential: Optional[str]) -> bool: ...

    async def script(self, topic: str, credential: Optional[str]) -> str: ...

    async def storyboard(self, text: str, credential: Optional[str]) -> List[Dict[str, str]]: ...


class Studio:
    """Owns the scene list and the one credential pool every call draws from."""

    def __init__(
        self,
        backend: GenerationBackend,
        config: Optional[StudioConfig] = None,
        credentials: Optional[CredentialPool] = None,
        logger: Optional[RunLogger] = None,
        reference_image: Optional[bytes] = None,
        encoder_factory: Optional[EncoderFactory] = None,
        sleep: Callable[[float], Awaitable[Any]] = anyio.sleep,
    ) -> None:
        self.backend = backend
        self.config = config or StudioConfig()
        self.credentials = credentials if credentials is not None else CredentialPool()
        self.logger = logger
        self.reference_image = reference_image
        self.encoder_factory = encoder_factory
        self.sleep = sleep
        self.failures: List[Dict[str, Any]] = []
        self._scenes: List[Scene] = []
        self._in_flight: Set[Tuple[str, int]] = set()

    @property
    def scenes(self) -> List[Scene]:
        return list(self._scenes)

    def set_scenes(self, scenes: Sequence[Scene]) -> None:
        self._scenes = list(scenes)

    def _set_scene(self, index: int, scene: Scene) -> None:
        updated = list(self._scenes)
        updated[index] = scene
        self._scenes = updated

    async def _call(self, label: str, fn: Callable[[Optional[str]], Awaitable[T]]) -> T:
        # One rotation slot per logical call; retries reuse the same credential.
        credential = self.credentials.next()
        if not self.backend.has_credential(credential):
            raise MissingCredentialError(f"{label}: no credential available")
        return await with_retry(
            lambda: fn(credential),
            retries=self.config.retries,
            delay_ms=self.config.retry_delay_ms,
            sleep=self.sleep,
            logger=self.logger,
            label=label,
        )

    async def generate_script(self, topic: str) -> str:
        return await self._call("script", lambda cred: self.backend.script(topic, cred))

    async def generate_storyboard(self, text: str) -> List[Scene]:
        items = await self._call("storyboard", lambda cred: self.backend.storyboard(text, cred))
        self.set_scenes([Scene(narrative_text=i["narrativeText"], image_prompt=i["imagePrompt"]) for i in items])
        self._log(f"storyboard:{len(self._scenes)} scenes")
        return self.scenes

    async def generate_narration(self, text: str) -> bytes:
        style = narration_style(self.config.narration_style)
        pcm = await self._call(
            "speech",
            lambda cred: self.backend.speech(text, self.config.voice, style.prompt, cred),
        )
        if not pcm:
            raise EmptyGenerationError("no audio data received")
        return pcm

    def narration_wav(self, pcm: bytes) -> bytes:
        return audio_codec.encode_wav(pcm, self.config.sample_rate, self.config.channels)

    def scene_wav(self, index: int) -> bytes:
        scene = self._scenes[index]
        if not scene.audio:
            raise ValueError(f"scene {index + 1} has no audio")
        return self.narration_wav(scene.audio)

    async def generate_scene_audio(self, index: int) -> bool:
        key = ("audio", index)
        if key in self._in_flight:
            return False
        self._in_flight.add(key)
        try:
            pcm = await self.generate_narration(self._scenes[index].narrative_text)
            self._set_scene(index, self._scenes[index].with_audio(pcm))
            return True
        except Exception as err:
            self._record_failure("audio", index, err)
            return False
        finally:
            self._in_flight.discard(key)

    async def generate_scene_image(self, index: int, override: Optional[bytes] = None) -> Optional[ImageResult]:
        key = ("image", index)
        if key in self._in_flight:
            return None
        self._in_flight.add(key)
        try:
            reference = select_reference(self._scenes, index, override=override, fallback=self.reference_image)
            style = visual_style(self.config.visual_style)
            prompt = prompts.scene_image_prompt(self._scenes[index].image_prompt, style.prompt_suffix)
            image = await self._call("image", lambda cred: self.backend.image(prompt, reference, cred))
            if not image:
                raise EmptyGenerationError("no image generated")
            presence = await self._check_character(image)
            self._set_scene(index, self._scenes[index].with_image(image, presence))
            return ImageResult(image=image, has_character=presence)
        except Exception as err:
            self._record_failure("image", index, err)
            return None
        finally:
            self._in_flight.discard(key)

    async def _check_character(self, image: bytes) -> CharacterPresence:
        # Single attempt, no retry: unavailable or failing classifiers resolve to PRESENT.
        credential = self.credentials.next()
        if not self.backend.has_credential(credential):
            self._log("character_check_skipped:no credential")
            return CharacterPresence.PRESENT
        try:
            found = await self.backend.character_presence(image, credential)
        except Exception as err:
            self._log(f"character_check_failed:{format_exception(err)}")
            return CharacterPresence.PRESENT
        return CharacterPresence.from_flag(found)

    async def generate_all_images(self) -> List[Optional[ImageResult]]:
        return await generate_missing_images(
            self._scenes,
            lambda index, reference: self.generate_scene_image(index, override=reference),
            fallback=self.reference_image,
            pacing_sec=self.config.image_pacing_ms / 1000.0,
            sleep=self.sleep,
        )

    async def render(self, on_progress: Optional[ProgressSink] = None) -> EncodedOutput:
        recorder = VideoRecorder(config=self.config, encoder_factory=self.encoder_factory, logger=self.logger)
        output = await recorder.render(self.scenes, on_progress)
        if self.logger:
            self.logger.save_step(
                "render",
                {
                    "content_type": output.content_type,
                    "size_bytes": len(output.data),
                    "duration_sec": round(output.duration_sec, 3),
                },
            )
        return output

    def export_assets(self, path: str) -> str:
        """Write text, prompt, image and WAV narration of every scene into one zip."""
        out_dir = os.path.dirname(os.path.abspath(path))
        os.makedirs(out_dir, exist_ok=True)
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for i, scene in enumerate(self._scenes):
                idx = f"{i + 1:02d}"
                zf.writestr(f"storyboard_assets/scene_{idx}_text.txt", scene.narrative_text)
                zf.writestr(f"storyboard_assets/scene_{idx}_prompt.txt", scene.image_prompt)
                if scene.image:
                    zf.writestr(f"storyboard_assets/scene_{idx}_image.png", scene.image)
                if scene.audio:
                    zf.writestr(f"storyboard_assets/scene_{idx}_audio.wav", self.narration_wav(scene.audio))
        return path

    def _record_failure(self, kind: str, index: int, err: BaseException) -> None:
        message = format_exception(err)
        self.failures.append({"kind": kind, "index": index, "error": message})
        self._log(f"scene_failure:{kind}:{index}:{message}")

    def _log(self, message: str) -> None:
        if self.logger:
            self.logger.log(message)
