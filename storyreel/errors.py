"""Error taxonomy for generation and rendering."""
import json
from typing import Any, Dict


class StoryreelError(RuntimeError):
    pass


class TransientUpstreamError(StoryreelError):
    """Rate-limit or overload signal from the generation service."""


class PermanentUpstreamError(StoryreelError):
    pass


class MissingCredentialError(StoryreelError):
    pass


class EmptyGenerationError(StoryreelError):
    pass


class DecodeError(StoryreelError):
    pass


class ImageLoadError(StoryreelError):
    pass


class NoRenderableScenes(StoryreelError):
    def __init__(self, total_scenes: int) -> None:
        self.total_scenes = total_scenes
        super().__init__(f"no scene among {total_scenes} has both image and audio")


class UnsupportedFormat(StoryreelError):
    pass


class EncoderError(StoryreelError):
    def __init__(self, payload: Dict[str, Any]) -> None:
        self.payload = payload
        super().__init__(json.dumps(payload, ensure_ascii=True))
