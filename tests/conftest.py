"""Shared fixtures for the CardBox test suite."""

from __future__ import annotations

import io

import pytest
from PIL import Image

from cardbox.infrastructure.observability.metrics import get_registry


@pytest.fixture(autouse=True)
def reset_metrics():
    """Start every test with an empty metric registry."""
    get_registry().reset()
    yield
    get_registry().reset()


@pytest.fixture
def blank_png() -> bytes:
    """A plain white PNG with nothing to decode on it."""
    buf = io.BytesIO()
    Image.new("RGB", (120, 80), "white").save(buf, format="PNG")
    return buf.getvalue()
