"""
Image metadata and the normalized pixel grid handed to sinks.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterator, List, NamedTuple, Optional, Tuple

import numpy as np
from pydantic import Field

from pixelgrid.domain.types.base import FrozenModel


class ImageConfig(FrozenModel):
    """Logical dimensions of an encoded image, read without decoding the pixels."""

    width: int = Field(ge=0)
    height: int = Field(ge=0)
    format: Optional[str] = None
    mode: Optional[str] = None

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height


class GridLayout(str, enum.Enum):
    #: ``height x width`` grid.
    EXACT = "exact"
    #: Legacy ``height x height`` grid; columns past ``height`` are dropped.
    SQUARE = "square"


class Truncation(str, enum.Enum):
    #: ``v >> 8``: keeps the most significant byte of a 16-bit channel.
    HIGH_BYTE = "high_byte"
    #: ``v & 0xFF``: keeps the least significant byte of a 16-bit channel.
    LOW_BYTE = "low_byte"


class RGBA(NamedTuple):
    r: int
    g: int
    b: int
    a: int


@dataclass(frozen=True, eq=False)
class PixelGrid:
    """
    Immutable grid of 8-bit RGBA samples indexed ``grid[row][col]``.

    Backed by a read-only ``uint8`` array of shape ``(rows, cols, 4)``.
    """

    pixels: np.ndarray

    def __post_init__(self):
        pixels = np.asarray(self.pixels)
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Pixel grid must have shape (rows, cols, 4), got {pixels.shape}")
        if pixels.dtype != np.uint8:
            raise ValueError(f"Pixel grid must be uint8, got {pixels.dtype}")
        if pixels.flags.writeable:
            pixels = pixels.copy()
            pixels.setflags(write=False)
        object.__setattr__(self, "pixels", pixels)

    @classmethod
    def blank(cls, height: int, width: int) -> "PixelGrid":
        return cls(np.zeros((height, width, 4), dtype=np.uint8))

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def is_square(self) -> bool:
        return self.height == self.width

    def sample(self, row: int, col: int) -> RGBA:
        r, g, b, a = (int(v) for v in self.pixels[row, col])
        return RGBA(r, g, b, a)

    def row(self, row: int) -> Tuple[RGBA, ...]:
        return tuple(RGBA(*(int(v) for v in px)) for px in self.pixels[row])

    def __getitem__(self, row: int) -> Tuple[RGBA, ...]:
        if not -self.height <= row < self.height:
            raise IndexError(f"row {row} out of range for grid with {self.height} rows")
        return self.row(row)

    def __len__(self) -> int:
        return self.height

    def __iter__(self) -> Iterator[Tuple[RGBA, ...]]:
        for row in range(self.height):
            yield self.row(row)

    def __eq__(self, other) -> bool:
        if not isinstance(other, PixelGrid):
            return NotImplemented
        return np.array_equal(self.pixels, other.pixels)

    def __hash__(self) -> int:
        return hash((self.pixels.shape, self.pixels.tobytes()))

    def __repr__(self) -> str:
        return f"PixelGrid(height={self.height}, width={self.width})"

    def to_array(self) -> np.ndarray:
        """Writable copy of the underlying samples."""
        return self.pixels.copy()

    def tolist(self) -> List[List[RGBA]]:
        return [list(row) for row in self]

    def to_image(self):
        """Pillow RGBA image of the grid, mostly useful for eyeballing results."""
        from PIL import Image

        return Image.fromarray(self.to_array())
