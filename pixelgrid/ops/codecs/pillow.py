"""
Codecs backed by Pillow.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import BinaryIO, Iterator, Optional, Sequence, Tuple

import numpy as np
from PIL import Image, UnidentifiedImageError

from pixelgrid.domain.types.grid import ImageConfig
from pixelgrid.errors import CodecError
from pixelgrid.ops.codecs.base import CHANNEL_MAX, Codec

logger = logging.getLogger(__name__)

_GRAY16_MODES = ("I;16", "I;16L", "I;16B", "I;16N")
_WIDE_MODES = ("I", "F")

_PILLOW_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    OSError,
    SyntaxError,
    ValueError,
    EOFError,
)


def image_to_array16(image: Image.Image) -> np.ndarray:
    """
    Straight-alpha RGBA samples of ``image`` on the 16-bit scale, shape (H, W, 4).

    8-bit channels are widened with ``v * 0x101``; 16-bit grey images keep their precision.
    """
    if image.mode in _GRAY16_MODES or image.mode in _WIDE_MODES:
        gray = np.asarray(image)
        if gray.dtype.kind == "f":
            gray = np.rint(gray)
        gray = np.clip(gray, 0, CHANNEL_MAX).astype(np.uint32)
        alpha = np.full(gray.shape, CHANNEL_MAX, dtype=np.uint32)
        return np.stack([gray, gray, gray, alpha], axis=-1)

    rgba = image if image.mode == "RGBA" else image.convert("RGBA")
    return np.asarray(rgba, dtype=np.uint32) * 0x101


class PillowPixelSource:
    """Pixel source over a fully decoded Pillow image."""

    def __init__(self, image: Image.Image):
        try:
            image.load()
            self._array = image_to_array16(image)
        except _PILLOW_ERRORS as e:
            raise CodecError(f"Cannot decode image pixels: {e}") from e
        self.mode = image.mode
        self.format = image.format

    @property
    def size(self) -> Tuple[int, int]:
        height, width = self._array.shape[:2]
        return width, height

    def at(self, x: int, y: int) -> Tuple[int, int, int, int]:
        height, width = self._array.shape[:2]
        if not (0 <= x < width and 0 <= y < height):
            return 0, 0, 0, 0
        r, g, b, a = (int(v) for v in self._array[y, x])
        return r, g, b, a

    def to_array(self) -> np.ndarray:
        return self._array


class PillowCodec(Codec):
    """
    Codec for one or more Pillow formats.

    ``PillowCodec("png")`` only accepts PNG streams; with no formats any
    image Pillow can identify is accepted.
    """

    def __init__(self, *formats: str):
        self.formats = tuple(f.lower() for f in formats)

    @property
    def _pillow_formats(self) -> Optional[Sequence[str]]:
        if not self.formats:
            return None
        return [f.upper() for f in self.formats]

    @contextmanager
    def _open(self, stream: BinaryIO) -> Iterator[Image.Image]:
        try:
            image = Image.open(stream, formats=self._pillow_formats)
        except _PILLOW_ERRORS as e:
            expected = "/".join(self.formats) or "image"
            raise CodecError(f"Not a valid {expected} stream: {e}") from e
        with image:
            fmt = (image.format or "").lower()
            if self.formats and fmt not in self.formats:
                raise CodecError(f"Expected {'/'.join(self.formats)} stream, got {fmt or 'unknown'}")
            yield image

    def read_config(self, stream: BinaryIO) -> ImageConfig:
        with self._open(stream) as image:
            width, height = image.size
            if width <= 0 or height <= 0:
                raise CodecError(f"Image has no pixels ({width}x{height})")
            return ImageConfig(
                width=width,
                height=height,
                format=(image.format or "").lower() or None,
                mode=image.mode,
            )

    def read_image(self, stream: BinaryIO) -> PillowPixelSource:
        with self._open(stream) as image:
            return PillowPixelSource(image)


class AnyImageCodec(PillowCodec):
    """Accepts every format Pillow can identify."""

    def __init__(self):
        super().__init__()


class PngCodec(PillowCodec):
    def __init__(self):
        super().__init__("png")


class JpegCodec(PillowCodec):
    # Pillow reports multi-picture JPEG files as MPO.
    def __init__(self):
        super().__init__("jpeg", "mpo")


class GifCodec(PillowCodec):
    """First frame of a GIF."""

    def __init__(self):
        super().__init__("gif")


class BmpCodec(PillowCodec):
    def __init__(self):
        super().__init__("bmp")


class WebpCodec(PillowCodec):
    def __init__(self):
        super().__init__("webp")


class TiffCodec(PillowCodec):
    def __init__(self):
        super().__init__("tiff")


__all__ = [
    "AnyImageCodec",
    "BmpCodec",
    "GifCodec",
    "JpegCodec",
    "PillowCodec",
    "PillowPixelSource",
    "PngCodec",
    "TiffCodec",
    "WebpCodec",
    "image_to_array16",
]
