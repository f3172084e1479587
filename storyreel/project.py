"""Local JSON project files holding the scene list."""
import base64
import json
import os
from typing import Any, Dict, List, Optional

from .models import CharacterPresence, Scene


def _b64(data: Optional[bytes]) -> Optional[str]:
    if not data:
        return None
    return base64.b64encode(data).decode("ascii")


def _unb64(value: Optional[str]) -> Optional[bytes]:
    if not value:
        return None
    # Tolerate data URLs ("data:image/png;base64,....").
    if value.startswith("data:") and "," in value:
        value = value.split(",", 1)[1]
    return base64.b64decode(value)


def scene_to_dict(scene: Scene) -> Dict[str, Any]:
    return {
        "narrativeText": scene.narrative_text,
        "imagePrompt": scene.image_prompt,
        "image": _b64(scene.image),
        "audio": _b64(scene.audio),
        "hasCharacter": scene.has_character.to_flag(),
    }


def scene_from_dict(raw: Dict[str, Any]) -> Scene:
    return Scene(
        narrative_text=str(raw.get("narrativeText") or ""),
        image_prompt=str(raw.get("imagePrompt") or ""),
        image=_unb64(raw.get("image") or raw.get("generatedImage")),
        audio=_unb64(raw.get("audio")),
        has_character=CharacterPresence.from_flag(raw.get("hasCharacter")),
    )


def save_project(path: str, scenes: List[Scene], name: str = "", text: str = "") -> None:
    out_dir = os.path.dirname(os.path.abspath(path))
    os.makedirs(out_dir, exist_ok=True)
    payload = {
        "name": name or os.path.splitext(os.path.basename(path))[0],
        "text_content": text,
        "segments": [scene_to_dict(s) for s in scenes],
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=True, indent=2)


def load_project(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        raise FileNotFoundError(f"project not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        payload = json.load(f)
    raw_scenes = payload.get("segments", []) if isinstance(payload, dict) else payload
    return {
        "name": payload.get("name", "") if isinstance(payload, dict) else "",
        "text_content": payload.get("text_content", "") if isinstance(payload, dict) else "",
        "scenes": [scene_from_dict(item) for item in raw_scenes if isinstance(item, dict)],
    }
