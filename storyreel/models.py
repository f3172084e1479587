"""Data contracts shared by generation, continuity and rendering."""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional

import numpy as np


class CharacterPresence(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"

    @classmethod
    def from_flag(cls, value: Optional[bool]) -> "CharacterPresence":
        if value is None:
            return cls.UNKNOWN
        return cls.PRESENT if value else cls.ABSENT

    def to_flag(self) -> Optional[bool]:
        if self is CharacterPresence.UNKNOWN:
            return None
        return self is CharacterPresence.PRESENT


@dataclass(frozen=True)
class Scene:
    narrative_text: str
    image_prompt: str
    image: Optional[bytes] = None
    audio: Optional[bytes] = None
    has_character: CharacterPresence = CharacterPresence.UNKNOWN

    @property
    def is_renderable(self) -> bool:
        return bool(self.image) and bool(self.audio)

    def with_image(self, image: bytes, has_character: CharacterPresence) -> "Scene":
        return replace(self, image=image, has_character=has_character)

    def with_audio(self, audio: bytes) -> "Scene":
        return replace(self, audio=audio)


class RenderPhase(str, Enum):
    PREPARING = "preparing"
    RENDERING = "rendering"
    FINALIZING = "finalizing"


@dataclass(frozen=True)
class RenderProgress:
    current_scene_index: int
    total_scenes: int
    phase: RenderPhase

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_scene_index": self.current_scene_index,
            "total_scenes": self.total_scenes,
            "phase": self.phase.value,
        }


@dataclass(frozen=True)
class EncodedOutput:
    data: bytes
    content_type: str
    extension: str
    duration_sec: float = 0.0


@dataclass
class Waveform:
    """Normalized float32 samples shaped (frames, channels)."""

    samples: np.ndarray
    sample_rate: int
    channels: int = 1

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration_sec(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.frame_count / float(self.sample_rate)
