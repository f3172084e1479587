from __future__ import annotations

import pytest

from fakes import FakeEncoder, make_png


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def fake_encoder() -> FakeEncoder:
    return FakeEncoder()
