"""Studio configuration: dataclass defaults, env overrides, optional YAML."""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

import yaml

DEFAULT_CONFIG_PATH = os.path.join("config", "defaults.yaml")

_ENV_KEYS = {
    "sample_rate": "STUDIO_SAMPLE_RATE",
    "channels": "STUDIO_CHANNELS",
    "width": "RENDER_WIDTH",
    "height": "RENDER_HEIGHT",
    "fps": "RENDER_FPS",
    "video_bitrate": "RENDER_VIDEO_BITRATE",
    "scene_gap_ms": "RENDER_SCENE_GAP_MS",
    "tail_ms": "RENDER_TAIL_MS",
    "image_pacing_ms": "IMAGE_PACING_MS",
    "retries": "GENERATION_RETRIES",
    "retry_delay_ms": "GENERATION_RETRY_DELAY_MS",
    "ffmpeg_bin": "FFMPEG_BIN",
    "speech_model": "GEMINI_SPEECH_MODEL",
    "image_model": "GEMINI_IMAGE_MODEL",
    "text_model": "GEMINI_TEXT_MODEL",
    "voice": "STUDIO_VOICE",
    "narration_style": "STUDIO_NARRATION_STYLE",
    "visual_style": "STUDIO_VISUAL_STYLE",
    "data_root": "DATA_ROOT",
}


@dataclass
class StudioConfig:
    sample_rate: int = 24000
    channels: int = 1
    width: int = 1080
    height: int = 1920
    fps: int = 30
    video_bitrate: str = "5M"
    scene_gap_ms: int = 100
    tail_ms: int = 500
    image_pacing_ms: int = 500
    retries: int = 3
    retry_delay_ms: int = 1000
    ffmpeg_bin: str = "ffmpeg"
    api_key: str = ""
    speech_model: str = "gemini-2.5-flash-preview-tts"
    image_model: str = "gemini-2.5-flash-image"
    text_model: str = "gemini-3-flash-preview"
    voice: str = "Fenrir"
    narration_style: str = "experienced"
    visual_style: str = "cinematic"
    data_root: str = "data"

    def apply(self, values: Dict[str, Any]) -> None:
        for f in fields(self):
            if f.name not in values or values[f.name] is None:
                continue
            current = getattr(self, f.name)
            setattr(self, f.name, type(current)(values[f.name]))


def _env_values() -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for name, env_key in _ENV_KEYS.items():
        value = os.getenv(env_key)
        if value is not None and value.strip():
            values[name] = value.strip()
    api_key = (os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or "").strip()
    if api_key:
        values["api_key"] = api_key
    return values


def _yaml_values(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        payload = yaml.safe_load(f) or {}
    section = payload.get("studio", {}) if isinstance(payload, dict) else {}
    return section if isinstance(section, dict) else {}


def load_config(path: Optional[str] = None) -> StudioConfig:
    """YAML section ``studio`` first, then environment variables on top."""
    cfg = StudioConfig()
    cfg.apply(_yaml_values(path or os.getenv("STUDIO_CONFIG", DEFAULT_CONFIG_PATH)))
    cfg.apply(_env_values())
    return cfg
