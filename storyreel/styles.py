"""Voices, narration styles and visual styles offered to the host."""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List


class VoiceName(str, Enum):
    PUCK = "Puck"
    CHARON = "Charon"
    KORE = "Kore"
    FENRIR = "Fenrir"
    ZEPHYR = "Zephyr"


@dataclass(frozen=True)
class VoiceOption:
    id: VoiceName
    label: str
    description: str
    gender: str


@dataclass(frozen=True)
class NarrationStyle:
    id: str
    label: str
    prompt: str


@dataclass(frozen=True)
class VisualStyle:
    id: str
    label: str
    prompt_suffix: str


AVAILABLE_VOICES: List[VoiceOption] = [
    VoiceOption(VoiceName.FENRIR, "Fenrir", "Deep, resonant, authoritative", "Male"),
    VoiceOption(VoiceName.PUCK, "Puck", "Clear, playful, expressive", "Male"),
    VoiceOption(VoiceName.KORE, "Kore", "Warm, soft, calm", "Female"),
    VoiceOption(VoiceName.CHARON, "Charon", "Low, husky, serious", "Male"),
    VoiceOption(VoiceName.ZEPHYR, "Zephyr", "Balanced, modern, friendly", "Female"),
]

NARRATION_STYLES: List[NarrationStyle] = [
    NarrationStyle(
        "experienced",
        "Experienced Narrator",
        "You are a world-class storyteller with a voice of wisdom and experience. Narrate the text with deep "
        "immersion, using perfect pacing, dramatic pauses, and subtle character inflections to captivate the "
        "listener. Do not read these instructions.",
    ),
    NarrationStyle(
        "bedtime",
        "Bedtime Story",
        "You are a gentle caregiver telling a bedtime story. Speak in a soft, slow, whispering, and comforting "
        "tone designed to help a child fall asleep. Do not read these instructions.",
    ),
    NarrationStyle(
        "dramatic",
        "Dramatic Trailer",
        "You are an intense narrator for a thriller or action movie trailer. Speak with high energy, urgency, "
        "and strong emphasis on emotional beats. Do not read these instructions.",
    ),
    NarrationStyle(
        "news",
        "Newscast",
        "You are a professional broadcast news anchor. Deliver the text with perfect articulation, a neutral "
        "and authoritative tone, and a steady, informative pace. Do not read these instructions.",
    ),
]

VISUAL_STYLES: List[VisualStyle] = [
    VisualStyle(
        "cinematic",
        "Cinematic",
        "cinematic lighting, highly detailed, 8k resolution, photorealistic, dramatic atmosphere, vertical 9:16 "
        "aspect ratio.",
    ),
    VisualStyle(
        "anatomy",
        "3D Anatomy",
        "Style description: 3D anatomical skeleton character, full body visible, internal organs exposed (lungs, "
        "heart, liver, intestines), semi transparent body, medical educational illustration, stylized cartoon "
        "eyes, ultra detailed organic textures, octane render, studio lighting, soft pink gradient background, "
        "high resolution, 8k. Negative prompt: low quality, blurry, deformed organs, extra limbs, missing bones, "
        "distorted anatomy, text artifacts, watermark, poor lighting, flat textures.",
    ),
    VisualStyle(
        "watercolor",
        "Watercolor",
        "Soft watercolor painting style, artistic, flowing colors, paper texture, dreamy atmosphere, detailed "
        "ink outlines.",
    ),
]

_NARRATION_BY_ID: Dict[str, NarrationStyle] = {s.id: s for s in NARRATION_STYLES}
_VISUAL_BY_ID: Dict[str, VisualStyle] = {s.id: s for s in VISUAL_STYLES}


def narration_style(style_id: str) -> NarrationStyle:
    return _NARRATION_BY_ID.get(style_id, NARRATION_STYLES[0])


def visual_style(style_id: str) -> VisualStyle:
    return _VISUAL_BY_ID.get(style_id, VISUAL_STYLES[0])
