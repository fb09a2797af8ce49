"""Image normalisation for the antigen test classifier.

Every upload, whatever its container, resolution or colour depth, becomes an
``int32`` tensor of shape ``[1, 256, 256, 1]``. The image is stretched to
256x256 without preserving aspect ratio, reduced to luminance, passed once
through a JPEG encoder and packed row-major, matching how the training images
were prepared. Cropping, padding or letterboxing instead of stretching changes
the verdicts.
"""
from __future__ import annotations

import io

import numpy as np
import torch
from PIL import Image
from torchvision.transforms.functional import pil_to_tensor

from .exceptions import DecodeError, ResizeError

INPUT_WIDTH = 256
INPUT_HEIGHT = 256
INPUT_CHANNELS = 1
JPEG_QUALITY = 80

_PASSTHROUGH_MODES = frozenset({"L", "RGB"})


def decode_image(image_bytes: bytes) -> Image.Image:
    """Decode raw bytes into an ``L`` or ``RGB`` image.

    Raises:
        DecodeError: the buffer is empty, truncated or not a known format.
        ResizeError: the decoded image has zero width or height.
    """
    if not image_bytes:
        raise DecodeError("Image buffer is empty")
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except Image.DecompressionBombError as exc:
        raise DecodeError(f"Image is too large to decode: {exc}") from exc
    except Exception as exc:
        # Corrupt headers surface as TypeError, struct.error, EOFError and others.
        raise DecodeError(f"Unable to decode image: {exc}") from exc

    if image.width == 0 or image.height == 0:
        raise ResizeError(f"Image has degenerate size {image.width}x{image.height}")
    try:
        return _flatten(image)
    except Exception as exc:
        raise DecodeError(f"Unable to convert image mode {image.mode}: {exc}") from exc


def _flatten(image: Image.Image) -> Image.Image:
    if image.mode in _PASSTHROUGH_MODES:
        return image
    if image.mode in ("1", "F"):
        return image.convert("L")
    if image.mode == "I" or image.mode.startswith("I;16"):
        # 16-bit samples keep their high byte.
        pixels = np.clip(np.asarray(image, dtype=np.int64), 0, 65535) >> 8
        return Image.fromarray(pixels.astype(np.uint8))
    if image.mode == "P" and "transparency" in image.info:
        image = image.convert("RGBA")
    if "A" in image.getbands():
        # Transparent regions become black, as a JPEG encoder would flatten them.
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (0, 0, 0))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return image.convert("RGB")


def to_frame(
    image: Image.Image, width: int = INPUT_WIDTH, height: int = INPUT_HEIGHT
) -> Image.Image:
    """Stretch ``image`` to exactly ``width`` x ``height`` and reduce it to luminance."""
    if image.width == 0 or image.height == 0:
        raise ResizeError(f"Image has degenerate size {image.width}x{image.height}")
    resized = image.resize((width, height), Image.Resampling.LANCZOS)
    return resized.convert("L")


def jpeg_roundtrip(frame: Image.Image, quality: int = JPEG_QUALITY) -> Image.Image:
    """Encode ``frame`` as JPEG and decode it again."""
    buffer = io.BytesIO()
    frame.save(buffer, format="JPEG", quality=quality)
    buffer.seek(0)
    reencoded = Image.open(buffer)
    reencoded.load()
    return reencoded


def frame_to_tensor(frame: Image.Image) -> torch.Tensor:
    """Pack the first channel of ``frame`` into an ``int32`` NHWC tensor."""
    pixels = pil_to_tensor(frame)
    luminance = pixels[0]
    return luminance.to(torch.int32).reshape(1, frame.height, frame.width, INPUT_CHANNELS)


def normalize(image_bytes: bytes, *, reencode: bool = True) -> torch.Tensor:
    """Convert an uploaded image into the classifier's ``[1, 256, 256, 1]`` input.

    ``reencode=False`` skips the JPEG round trip. Pixel values then differ
    slightly from what the model was trained on, so only disable it after
    checking verdicts against the trained model.
    """
    image = decode_image(image_bytes)
    frame = to_frame(image)
    if reencode:
        frame = jpeg_roundtrip(frame)
    return frame_to_tensor(frame)
