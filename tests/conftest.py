"""Shared test configuration."""
from __future__ import annotations

import io
import os
from typing import Callable

import pytest
from PIL import Image

# Keep test runs from writing rotating log files into the working tree.
os.environ.setdefault("ANTIGEN_LOG_DIR", "")


def _encode(image: Image.Image, fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def encode_image() -> Callable[..., bytes]:
    return _encode


@pytest.fixture
def png_bytes() -> bytes:
    return _encode(Image.new("RGB", (320, 240), color=(128, 128, 128)))
