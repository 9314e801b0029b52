"""Shared fixtures: small in-memory images."""

import io

import pytest
from PIL import Image


def encode_image(img: Image.Image, fmt: str = 'JPEG') -> bytes:
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def gradient_image(width: int = 64, height: int = 48) -> Image.Image:
    """RGB image with enough structure for blur/sharpen/rotate to show."""
    img = Image.new('RGB', (width, height))
    pixels = img.load()
    for x in range(width):
        for y in range(height):
            pixels[x, y] = (x * 255 // width, y * 255 // height, 128 if (x // 8 + y // 8) % 2 else 32)
    return img


@pytest.fixture
def jpeg_bytes():
    return encode_image(gradient_image(), 'JPEG')


@pytest.fixture
def png_bytes():
    return encode_image(gradient_image(), 'PNG')


@pytest.fixture
def corrupt_bytes():
    return b'\xff\xd8\xff\xe0 definitely not a jpeg body' * 4
