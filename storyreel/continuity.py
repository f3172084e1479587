"""Reference-image selection that keeps a recurring character consistent."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence

import anyio

from .models import CharacterPresence, Scene

DEFAULT_PACING_SEC = 0.5


@dataclass(frozen=True)
class ImageResult:
    image: bytes
    has_character: CharacterPresence


def carries_character(scene: Scene) -> bool:
    # UNKNOWN qualifies: only a confirmed absence stops the chain.
    return bool(scene.image) and scene.has_character is not CharacterPresence.ABSENT


def select_reference(
    scenes: Sequence[Scene],
    index: int,
    override: Optional[bytes] = None,
    fallback: Optional[bytes] = None,
) -> Optional[bytes]:
    """Pick the reference image for generating scene ``index``."""
    if override:
        return override
    for i in range(min(index, len(scenes)) - 1, -1, -1):
        if carries_character(scenes[i]):
            return scenes[i].image
    return fallback or None


GenerateImage = Callable[[int, Optional[bytes]], Awaitable[Optional[ImageResult]]]


async def generate_missing_images(
    scenes: Sequence[Scene],
    generate: GenerateImage,
    fallback: Optional[bytes] = None,
    pacing_sec: float = DEFAULT_PACING_SEC,
    sleep: Callable[[float], Awaitable[Any]] = anyio.sleep,
) -> List[Optional[ImageResult]]:
    """Walk scenes in order, generating images against a running reference.

    ``generate(index, reference)`` returns None when that scene failed; the
    walk continues. Existing images update the running reference without
    being regenerated.
    """
    current = fallback
    results: List[Optional[ImageResult]] = []
    for index, scene in enumerate(scenes):
        if scene.image:
            if scene.has_character is not CharacterPresence.ABSENT:
                current = scene.image
            results.append(None)
            continue
        result = await generate(index, current)
        if result is not None and result.has_character is not CharacterPresence.ABSENT:
            current = result.image
        results.append(result)
        await sleep(pacing_sec)
    return results
