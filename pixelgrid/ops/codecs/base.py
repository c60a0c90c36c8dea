from __future__ import annotations

import io
from abc import ABC, abstractmethod
from typing import Any, BinaryIO, Callable, Optional, Protocol, Tuple, runtime_checkable

import numpy as np
from pydantic import ValidationError

from pixelgrid.domain.types.grid import ImageConfig
from pixelgrid.errors import CodecError

#: Channel values returned by pixel sources are on the 16-bit scale.
CHANNEL_MAX = 0xFFFF

Sample16 = Tuple[int, int, int, int]


@runtime_checkable
class PixelSource(Protocol):
    """Decoded image that can be queried for a straight-alpha 16-bit RGBA sample."""

    def at(self, x: int, y: int) -> Sample16: ...


class ArrayPixelSource:
    """Pixel source over a numpy array of shape (H, W, 4) or (H, W, 3)."""

    def __init__(self, array: np.ndarray):
        array = np.asarray(array)
        if array.ndim != 3 or array.shape[2] not in (3, 4):
            raise CodecError(f"Expected an (H, W, 3|4) array, got shape {array.shape}")
        if array.dtype == np.uint8:
            array = array.astype(np.uint32) * 0x101
        elif array.dtype == np.uint16:
            array = array.astype(np.uint32)
        else:
            raise CodecError(f"Unsupported sample type {array.dtype}; expected uint8 or uint16")
        if array.shape[2] == 3:
            alpha = np.full(array.shape[:2] + (1,), CHANNEL_MAX, dtype=np.uint32)
            array = np.concatenate([array, alpha], axis=2)
        self._array = array

    @property
    def size(self) -> Tuple[int, int]:
        height, width = self._array.shape[:2]
        return width, height

    def at(self, x: int, y: int) -> Sample16:
        height, width = self._array.shape[:2]
        if not (0 <= x < width and 0 <= y < height):
            return 0, 0, 0, 0
        r, g, b, a = (int(v) for v in self._array[y, x])
        return r, g, b, a

    def to_array(self) -> np.ndarray:
        return self._array


class Codec(ABC):
    """Decodes one family of encoded images into metadata and a pixel source."""

    #: Lower-case names of the formats this codec accepts.
    formats: Tuple[str, ...] = ()

    @abstractmethod
    def read_config(self, stream: BinaryIO) -> ImageConfig:
        """Read the logical dimensions of the image in ``stream``."""

    @abstractmethod
    def read_image(self, stream: BinaryIO) -> PixelSource:
        """Fully decode the image in ``stream``."""

    def decode(self, data: bytes) -> Tuple[ImageConfig, PixelSource]:
        """
        Decode metadata and pixels from ``data``.

        Each stage reads its own cursor over the same bytes.
        """
        config = self.read_config(io.BytesIO(data))
        source = self.read_image(io.BytesIO(data))
        return config, source

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return f"{self.__class__.__name__}(formats={self.formats})"


ConfigFn = Callable[[BinaryIO], Any]
ImageFn = Callable[[BinaryIO], Any]


class FunctionCodec(Codec):
    """
    Codec assembled from a free-standing pair of functions.

    ``config_fn`` may return an :class:`ImageConfig`, a mapping with
    ``width``/``height`` keys or a ``(width, height)`` pair. ``image_fn`` may
    return anything :func:`as_pixel_source` accepts.
    """

    def __init__(self, config_fn: ConfigFn, image_fn: ImageFn, name: Optional[str] = None):
        self.config_fn = config_fn
        self.image_fn = image_fn
        self.formats = (name,) if name else ()

    def read_config(self, stream: BinaryIO) -> ImageConfig:
        return as_image_config(self.config_fn(stream))

    def read_image(self, stream: BinaryIO) -> PixelSource:
        return as_pixel_source(self.image_fn(stream))


def as_image_config(value: Any) -> ImageConfig:
    if isinstance(value, ImageConfig):
        return value
    try:
        if isinstance(value, dict):
            return ImageConfig(**value)
        if isinstance(value, (tuple, list)) and len(value) == 2:
            width, height = value
            return ImageConfig(width=width, height=height)
    except ValidationError as e:
        raise CodecError(f"Invalid image dimensions: {value!r}") from e
    raise CodecError(f"Cannot read image dimensions from {type(value).__name__}")


def as_pixel_source(value: Any) -> PixelSource:
    """Adapt a decoded Pillow image, numpy array or pixel source to :class:`PixelSource`."""
    from PIL import Image

    from pixelgrid.ops.codecs.pillow import PillowPixelSource

    if isinstance(value, Image.Image):
        return PillowPixelSource(value)
    if isinstance(value, np.ndarray):
        return ArrayPixelSource(value)
    if isinstance(value, PixelSource):
        return value
    raise CodecError(f"Decoded object of type {type(value).__name__} is not pixel-addressable")


__all__ = [
    "ArrayPixelSource",
    "CHANNEL_MAX",
    "Codec",
    "FunctionCodec",
    "PixelSource",
    "as_image_config",
    "as_pixel_source",
]
