from __future__ import annotations

import base64
import json

import pytest

from storyreel.config import StudioConfig, load_config
from storyreel.gemini_client import parse_storyboard, sniff_image_mime
from storyreel.errors import PermanentUpstreamError
from storyreel.models import CharacterPresence, Scene
from storyreel.project import load_project, save_project, scene_from_dict
from storyreel.styles import narration_style, visual_style


def test_project_save_load(tmp_path):
    path = tmp_path / "projects" / "moon.json"
    scenes = [
        Scene("one", "p1", image=b"\x89PNGdata", audio=b"\x00\x01", has_character=CharacterPresence.ABSENT),
        Scene("two", "p2"),
    ]
    save_project(str(path), scenes, text="one. two.")
    project = load_project(str(path))
    assert project["name"] == "moon"
    assert project["text_content"] == "one. two."
    assert project["scenes"] == scenes
    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["segments"][0]["hasCharacter"] is False
    assert raw["segments"][1]["hasCharacter"] is None


def test_scene_from_data_url():
    encoded = base64.b64encode(b"img").decode("ascii")
    scene = scene_from_dict(
        {"narrativeText": "n", "imagePrompt": "p", "generatedImage": f"data:image/png;base64,{encoded}", "hasCharacter": True}
    )
    assert scene.image == b"img"
    assert scene.audio is None
    assert scene.has_character is CharacterPresence.PRESENT


def test_load_missing_project(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_project(str(tmp_path / "nope.json"))


def test_config_yaml_then_env(tmp_path, monkeypatch):
    path = tmp_path / "studio.yaml"
    path.write_text("studio:\n  fps: 24\n  width: 720\n  voice: Kore\n", encoding="utf-8")
    monkeypatch.setenv("RENDER_WIDTH", "540")
    monkeypatch.setenv("GEMINI_API_KEY", "AIzaSy-test")
    monkeypatch.delenv("RENDER_FPS", raising=False)
    cfg = load_config(str(path))
    assert cfg.fps == 24
    assert cfg.width == 540
    assert cfg.voice == "Kore"
    assert cfg.api_key == "AIzaSy-test"
    assert cfg.height == StudioConfig().height


def test_config_defaults_without_file(tmp_path, monkeypatch):
    for key in ("RENDER_WIDTH", "RENDER_FPS", "GEMINI_API_KEY", "API_KEY"):
        monkeypatch.delenv(key, raising=False)
    cfg = load_config(str(tmp_path / "missing.yaml"))
    assert (cfg.width, cfg.height, cfg.fps) == (1080, 1920, 30)
    assert cfg.sample_rate == 24000
    assert cfg.api_key == ""


def test_parse_storyboard():
    raw = '```json\n[{"narrativeText": " Dark. ", "imagePrompt": "void"}, {"narrativeText": ""}, 3]\n```'
    assert parse_storyboard(raw) == [{"narrativeText": "Dark.", "imagePrompt": "void"}]
    with pytest.raises(PermanentUpstreamError):
        parse_storyboard("not json")
    with pytest.raises(PermanentUpstreamError):
        parse_storyboard('{"narrativeText": "x"}')


def test_image_mime_and_styles():
    assert sniff_image_mime(b"\xff\xd8\xff\xe0rest") == "image/jpeg"
    assert sniff_image_mime(b"\x89PNG\r\n\x1a\nrest") == "image/png"
    assert narration_style("missing").id == narration_style("experienced").id
    assert visual_style("watercolor").id == "watercolor"
