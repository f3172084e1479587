from __future__ import annotations

import threading
from typing import List, Optional

import cv2
import numpy as np

from storyreel.encoder import FORMAT_PRIORITY, ContainerFormat
from storyreel.errors import UnsupportedFormat


def make_png(width: int = 30, height: int = 40, value: int = 200) -> bytes:
    ok, buf = cv2.imencode(".png", np.full((height, width, 3), value, dtype=np.uint8))
    assert ok
    return buf.tobytes()


def make_pcm(seconds: float, sample_rate: int = 24000) -> bytes:
    return np.zeros(int(round(seconds * sample_rate)), dtype="<i2").tobytes()


class FakeEncoder:
    def __init__(self, supported: bool = True) -> None:
        self.supported = supported
        self.format: Optional[ContainerFormat] = None
        self.frames = 0
        self.samples = 0
        self.frame_sizes: set[int] = set()
        self.events: List[str] = []
        self.negotiate_thread: Optional[int] = None

    def negotiate(self) -> ContainerFormat:
        self.negotiate_thread = threading.get_ident()
        if not self.supported:
            raise UnsupportedFormat("no encoders")
        self.format = FORMAT_PRIORITY[0]
        return self.format

    async def start(self) -> None:
        self.events.append("start")

    async def write_frame(self, frame: bytes) -> None:
        self.frames += 1
        self.frame_sizes.add(len(frame))

    async def write_audio(self, samples) -> None:
        self.samples += len(samples)

    async def stop(self) -> bytes:
        self.events.append("stop")
        return b"chunk-1" + b"chunk-2"

    async def abort(self) -> None:
        self.events.append("abort")


class FakeBackend:
    """Scripted generation backend recording which credential each call used."""

    def __init__(self, default_credential: bool = False) -> None:
        self.default_credential = default_credential
        self.calls: List[tuple] = []
        self.image_refs: List[Optional[bytes]] = []
        self.image_prompts: List[str] = []
        self.presence: List[object] = []
        self.speech_errors: List[Exception] = []
        self.failing_prompts: set = set()

    def has_credential(self, credential: Optional[str]) -> bool:
        return bool(credential) or self.default_credential

    async def speech(self, text, voice, style_prompt, credential):
        self.calls.append(("speech", credential))
        if self.speech_errors:
            raise self.speech_errors.pop(0)
        return make_pcm(0.1)

    async def image(self, prompt, reference, credential):
        self.calls.append(("image", credential))
        self.image_refs.append(reference)
        self.image_prompts.append(prompt)
        if any(marker in prompt for marker in self.failing_prompts):
            raise ValueError("prompt rejected")
        return f"img-{len(self.image_refs) - 1}".encode()

    async def character_presence(self, image, credential):
        self.calls.append(("character", credential))
        outcome = self.presence.pop(0) if self.presence else True
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def script(self, topic, credential):
        self.calls.append(("script", credential))
        return f"What if {topic}?"

    async def storyboard(self, text, credential):
        self.calls.append(("storyboard", credential))
        return [
            {"narrativeText": part.strip(), "imagePrompt": f"drawing of {part.strip()}"}
            for part in text.split(".")
            if part.strip()
        ]
