from __future__ import annotations

from typing import List, Optional, Tuple

import pytest

from storyreel.continuity import ImageResult, generate_missing_images, select_reference
from storyreel.models import CharacterPresence, Scene

PRESENT = CharacterPresence.PRESENT
ABSENT = CharacterPresence.ABSENT
UNKNOWN = CharacterPresence.UNKNOWN


def _scene(image: Optional[bytes] = None, presence: CharacterPresence = UNKNOWN) -> Scene:
    return Scene(narrative_text="text", image_prompt="prompt", image=image, has_character=presence)


def test_reference_is_nearest_earlier_character_image():
    scenes = [_scene(b"img0", PRESENT), _scene(b"img1", ABSENT), _scene()]
    assert select_reference(scenes, 2) == b"img0"


def test_unknown_presence_counts_as_character():
    scenes = [_scene(b"img0", PRESENT), _scene(b"img1", UNKNOWN), _scene()]
    assert select_reference(scenes, 2) == b"img1"


def test_scenes_without_images_are_skipped():
    scenes = [_scene(b"img0", PRESENT), _scene(None, PRESENT), _scene()]
    assert select_reference(scenes, 2) == b"img0"


def test_override_wins_and_fallback_applies():
    scenes = [_scene(b"img0", PRESENT), _scene()]
    assert select_reference(scenes, 1, override=b"manual") == b"manual"
    only_absent = [_scene(b"img0", ABSENT), _scene()]
    assert select_reference(only_absent, 1, fallback=b"global") == b"global"
    assert select_reference(only_absent, 1) is None
    assert select_reference([_scene()], 0, fallback=b"global") == b"global"


def test_later_scenes_are_never_considered():
    scenes = [_scene(), _scene(b"later", PRESENT)]
    assert select_reference(scenes, 0) is None


@pytest.mark.anyio
async def test_batch_updates_running_reference():
    scenes = [_scene(), _scene(b"pre", PRESENT), _scene(), _scene(), _scene(b"skip", ABSENT), _scene()]
    outcomes = {0: ABSENT, 2: PRESENT, 3: UNKNOWN, 5: PRESENT}
    calls: List[Tuple[int, Optional[bytes]]] = []
    delays: List[float] = []

    async def generate(index, reference):
        calls.append((index, reference))
        return ImageResult(image=f"gen{index}".encode(), has_character=outcomes[index])

    async def sleep(delay):
        delays.append(delay)

    results = await generate_missing_images(scenes, generate, fallback=b"global", pacing_sec=0.5, sleep=sleep)
    assert calls == [(0, b"global"), (2, b"pre"), (3, b"gen2"), (5, b"gen3")]
    assert delays == [0.5] * 4
    assert results[1] is None and results[4] is None
    assert results[2].image == b"gen2"


@pytest.mark.anyio
async def test_batch_continues_after_failed_scene():
    scenes = [_scene(), _scene(), _scene()]
    calls = []

    async def generate(index, reference):
        calls.append((index, reference))
        if index == 1:
            return None
        return ImageResult(image=f"gen{index}".encode(), has_character=PRESENT)

    async def sleep(_delay):
        return None

    results = await generate_missing_images(scenes, generate, sleep=sleep)
    assert calls == [(0, None), (1, b"gen0"), (2, b"gen0")]
    assert results[1] is None
    assert results[2].image == b"gen2"
