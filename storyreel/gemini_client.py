"""Gemini backend for speech, image, character-check, script and storyboard calls."""
from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types

from . import prompts
from .config import StudioConfig
from .errors import MissingCredentialError, PermanentUpstreamError


def sniff_image_mime(data: bytes) -> str:
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "image/png"


def strip_code_fences(text: str) -> str:
    return re.sub(r"```(?:json)?", "", text or "").strip()


class GeminiBackend:
    def __init__(self, config: Optional[StudioConfig] = None) -> None:
        self.config = config or StudioConfig()

    def has_credential(self, credential: Optional[str]) -> bool:
        return bool(credential or self.config.api_key)

    def _client(self, credential: Optional[str]) -> genai.Client:
        key = credential or self.config.api_key
        if not key:
            raise MissingCredentialError("no API key: load a credential file or set GEMINI_API_KEY")
        return genai.Client(api_key=key)

    async def speech(self, text: str, voice: str, style_prompt: str, credential: Optional[str]) -> Optional[bytes]:
        client = self._client(credential)
        response = await client.aio.models.generate_content(
            model=self.config.speech_model,
            contents=prompts.speech_text(text, style_prompt),
            config=types.GenerateContentConfig(
                response_modalities=["AUDIO"],
                speech_config=types.SpeechConfig(
                    voice_config=types.VoiceConfig(
                        prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice),
                    ),
                ),
            ),
        )
        return _first_inline_data(response)

    async def image(self, prompt: str, reference: Optional[bytes], credential: Optional[str]) -> Optional[bytes]:
        client = self._client(credential)
        contents: List[Any] = []
        if reference:
            contents.append(types.Part.from_bytes(data=reference, mime_type=sniff_image_mime(reference)))
            contents.append(prompts.REFERENCE_STYLE.format(prompt=prompt))
        else:
            contents.append(prompt)
        response = await client.aio.models.generate_content(
            model=self.config.image_model,
            contents=contents,
            config=types.GenerateContentConfig(
                response_modalities=["IMAGE"],
                image_config=types.ImageConfig(aspect_ratio="9:16"),
            ),
        )
        return _first_inline_data(response)

    async def character_presence(self, image: bytes, credential: Optional[str]) -> bool:
        client = self._client(credential)
        response = await client.aio.models.generate_content(
            model=self.config.text_model,
            contents=[
                types.Part.from_bytes(data=image, mime_type=sniff_image_mime(image)),
                prompts.CHARACTER_CHECK,
            ],
            config=types.GenerateContentConfig(response_mime_type="application/json"),
        )
        text = response.text
        if not text:
            return True
        payload = json.loads(strip_code_fences(text))
        return bool(payload.get("hasCharacter")) if isinstance(payload, dict) else True

    async def script(self, topic: str, credential: Optional[str]) -> str:
        client = self._client(credential)
        response = await client.aio.models.generate_content(
            model=self.config.text_model,
            contents=prompts.script_request(topic),
            config=types.GenerateContentConfig(system_instruction=prompts.SCRIPT_SYSTEM),
        )
        return response.text or ""

    async def storyboard(self, text: str, credential: Optional[str]) -> List[Dict[str, str]]:
        client = self._client(credential)
        response = await client.aio.models.generate_content(
            model=self.config.text_model,
            contents=text,
            config=types.GenerateContentConfig(
                system_instruction=prompts.STORYBOARD_SYSTEM,
                response_mime_type="application/json",
            ),
        )
        return parse_storyboard(response.text or "[]")


def parse_storyboard(raw: str) -> List[Dict[str, str]]:
    try:
        payload = json.loads(strip_code_fences(raw))
    except json.JSONDecodeError as err:
        raise PermanentUpstreamError(f"storyboard response is not JSON: {err}") from err
    if not isinstance(payload, list):
        raise PermanentUpstreamError("storyboard response must be a JSON array")
    items: List[Dict[str, str]] = []
    for entry in payload:
        if not isinstance(entry, dict):
            continue
        narrative = str(entry.get("narrativeText") or "").strip()
        if not narrative:
            continue
        items.append({"narrativeText": narrative, "imagePrompt": str(entry.get("imagePrompt") or "").strip()})
    return items


def _first_inline_data(response: Any) -> Optional[bytes]:
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if inline is not None and inline.data:
                return inline.data
        break
    return None
