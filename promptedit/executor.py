"""
PROMPTEDIT Executor - Applies an operation plan with Pillow.

The input is decoded once, each operation runs in plan order on an
in-memory copy, and the result is encoded as JPEG. Nothing is written
anywhere; a failure part-way through discards the working image.
"""

import io
from typing import Callable, Dict, Sequence

from PIL import Image, ImageEnhance, ImageFilter, ImageOps

from promptedit.config import DEFAULT_JPEG_QUALITY
from promptedit.errors import DecodeError, TransformError
from promptedit.rules import (
    Blur,
    Brighten,
    Darken,
    Desaturate,
    Grayscale,
    HorizontalFlip,
    Invert,
    Normalize,
    OperationSpec,
    Resize,
    Rotate,
    Saturate,
    Sepia,
    Sharpen,
)


OUTPUT_FORMAT = 'JPEG'
OUTPUT_MIME_TYPE = 'image/jpeg'


def decode_image(image_bytes: bytes) -> Image.Image:
    """Decode and fully load image bytes, raising DecodeError on failure."""
    if not image_bytes:
        raise DecodeError("Image data is empty")
    try:
        img = Image.open(io.BytesIO(image_bytes))
        img.load()
    except Exception as e:
        raise DecodeError(f"Could not decode image: {e}") from e
    return img


def to_rgb(img: Image.Image) -> Image.Image:
    """Convert to RGB, flattening any transparency onto white."""
    if img.mode == 'RGB':
        return img.copy()
    if img.mode in ('RGBA', 'LA') or (img.mode == 'P' and 'transparency' in img.info):
        rgba = img.convert('RGBA')
        background = Image.new('RGB', rgba.size, 'white')
        background.paste(rgba, mask=rgba.getchannel('A'))
        return background
    return img.convert('RGB')


# ---------------------------------------------------------------------------
# Transforms
# ---------------------------------------------------------------------------

def _blur(img: Image.Image, op: Blur) -> Image.Image:
    return img.filter(ImageFilter.GaussianBlur(radius=op.radius))


def _grayscale(img: Image.Image, op: Grayscale) -> Image.Image:
    # Back to RGB so later colour operations keep working
    return ImageOps.grayscale(img).convert('RGB')


def _sepia(img: Image.Image, op: Sepia) -> Image.Image:
    gray = ImageOps.grayscale(img)
    return ImageOps.colorize(gray, black=op.dark, white=op.light, mid=op.mid)


def _brightness(img: Image.Image, op) -> Image.Image:
    return ImageEnhance.Brightness(img).enhance(op.factor)


def _saturation(img: Image.Image, op) -> Image.Image:
    return ImageEnhance.Color(img).enhance(op.factor)


def _flip(img: Image.Image, op: HorizontalFlip) -> Image.Image:
    return ImageOps.mirror(img)


def _rotate(img: Image.Image, op: Rotate) -> Image.Image:
    if op.angle % 360 == 0:
        return img.copy()
    # Pillow rotates counter-clockwise
    return img.rotate(
        -op.angle,
        resample=Image.Resampling.BICUBIC,
        expand=True,
        fillcolor='white',
    )


def _sharpen(img: Image.Image, op: Sharpen) -> Image.Image:
    return img.filter(ImageFilter.SHARPEN)


def _invert(img: Image.Image, op: Invert) -> Image.Image:
    return ImageOps.invert(img)


def _resize(img: Image.Image, op: Resize) -> Image.Image:
    if op.width <= 0 or op.height <= 0:
        raise ValueError(f"Invalid resize bounds {op.width}x{op.height}")
    resized = img.copy()
    # thumbnail() keeps the aspect ratio and never enlarges
    resized.thumbnail((op.width, op.height), Image.Resampling.LANCZOS)
    return resized


def _normalize(img: Image.Image, op: Normalize) -> Image.Image:
    return ImageOps.autocontrast(img, cutoff=op.cutoff)


TRANSFORMS: Dict[str, Callable[[Image.Image, OperationSpec], Image.Image]] = {
    Blur.kind: _blur,
    Grayscale.kind: _grayscale,
    Sepia.kind: _sepia,
    Brighten.kind: _brightness,
    Darken.kind: _brightness,
    Saturate.kind: _saturation,
    Desaturate.kind: _saturation,
    HorizontalFlip.kind: _flip,
    Rotate.kind: _rotate,
    Sharpen.kind: _sharpen,
    Invert.kind: _invert,
    Resize.kind: _resize,
    Normalize.kind: _normalize,
}


class TransformExecutor:
    """Applies resolved operation plans to encoded image bytes."""

    def __init__(self, quality: int = DEFAULT_JPEG_QUALITY):
        self.quality = quality

    def apply_to_image(self, img: Image.Image, plan: Sequence[OperationSpec]) -> Image.Image:
        """
        Run every operation of ``plan`` on a decoded image.

        Raises:
            TransformError: naming the first operation that failed
        """
        try:
            working = to_rgb(img)
        except Exception as e:
            raise DecodeError(f"Unsupported image mode '{img.mode}': {e}") from e

        for op in plan:
            transform = TRANSFORMS.get(op.kind)
            if transform is None:
                raise TransformError(op.describe(), ValueError(f"Unknown operation kind: {op.kind}"))
            try:
                working = transform(working, op)
            except Exception as e:
                raise TransformError(op.describe(), e) from e
        return working

    def encode(self, img: Image.Image) -> bytes:
        buffer = io.BytesIO()
        img.save(buffer, format=OUTPUT_FORMAT, quality=self.quality)
        return buffer.getvalue()

    def apply(self, image_bytes: bytes, plan: Sequence[OperationSpec]) -> bytes:
        """
        Decode ``image_bytes``, apply ``plan`` and encode the result.

        Args:
            image_bytes: Encoded input image (any format Pillow reads)
            plan: Operations to apply, in order

        Returns:
            JPEG bytes. An empty plan returns the input bytes untouched once
            they are known to decode.

        Raises:
            DecodeError: input bytes are not a decodable image
            TransformError: an operation failed; no output is produced
        """
        img = decode_image(image_bytes)
        if not plan:
            return image_bytes

        edited = self.apply_to_image(img, plan)
        try:
            return self.encode(edited)
        except Exception as e:
            raise TransformError('encode', e) from e
