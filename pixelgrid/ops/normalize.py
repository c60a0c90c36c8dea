"""
Conversion of decoded 16-bit samples into an 8-bit RGBA pixel grid.

Samples are read row by row, column by column, querying the source with
``x=col, y=row``. The grid is ``height x width`` for ``GridLayout.EXACT``.
``GridLayout.SQUARE`` keeps the legacy ``height x height`` grid: columns at
index ``>= height`` are dropped and columns in ``[width, height)`` stay
transparent black.
"""

from __future__ import annotations

from typing import Sequence, Tuple, Union

import numpy as np

from pixelgrid.domain.types.grid import RGBA, GridLayout, ImageConfig, PixelGrid, Truncation
from pixelgrid.ops.codecs.base import CHANNEL_MAX, PixelSource


def truncate_channel(value: int, truncation: Union[Truncation, str] = Truncation.HIGH_BYTE) -> int:
    """Reduce a 16-bit channel value to 8 bits."""
    if not 0 <= value <= CHANNEL_MAX:
        raise ValueError(f"Channel value {value} outside the 16-bit range")
    if Truncation(truncation) == Truncation.LOW_BYTE:
        return value & 0xFF
    return value >> 8


def premultiply(sample: Sequence[int]) -> Tuple[int, int, int, int]:
    r, g, b, a = sample
    return r * a // CHANNEL_MAX, g * a // CHANNEL_MAX, b * a // CHANNEL_MAX, a


def normalize_sample(
    sample: Sequence[int],
    truncation: Union[Truncation, str] = Truncation.HIGH_BYTE,
    premultiply_alpha: bool = False,
) -> RGBA:
    if len(sample) != 4:
        raise ValueError(f"Expected an RGBA sample, got {sample!r}")
    # Numpy scalars would overflow in their own dtype when premultiplied.
    sample = tuple(int(v) for v in sample)
    if premultiply_alpha:
        for v in sample:
            if not 0 <= v <= CHANNEL_MAX:
                raise ValueError(f"Channel value {v} outside the 16-bit range")
        sample = premultiply(sample)
    r, g, b, a = (truncate_channel(v, truncation) for v in sample)
    return RGBA(r, g, b, a)


def grid_shape(config: ImageConfig, layout: Union[GridLayout, str] = GridLayout.EXACT) -> Tuple[int, int]:
    """(rows, cols) of the grid produced for an image with the given metadata."""
    if GridLayout(layout) == GridLayout.SQUARE:
        return config.height, config.height
    return config.height, config.width


def _truncate_array(samples: np.ndarray, truncation: Truncation) -> np.ndarray:
    if truncation == Truncation.LOW_BYTE:
        return (samples & 0xFF).astype(np.uint8)
    return (samples >> 8).astype(np.uint8)


def _read_region(source: PixelSource, height: int, width: int) -> np.ndarray:
    """Source samples clipped or zero-padded to ``height x width``."""
    array = np.asarray(source.to_array())
    if array.ndim != 3 or array.shape[2] != 4:
        raise ValueError(f"Pixel source returned an array of shape {array.shape}, expected (H, W, 4)")
    if array.size and (array.min() < 0 or array.max() > CHANNEL_MAX):
        raise ValueError("Pixel source returned channel values outside the 16-bit range")
    region = np.zeros((height, width, 4), dtype=np.uint64)
    h = min(height, array.shape[0])
    w = min(width, array.shape[1])
    region[:h, :w] = array[:h, :w]
    return region


def to_pixel_grid(
    config: ImageConfig,
    source: PixelSource,
    *,
    layout: Union[GridLayout, str] = GridLayout.EXACT,
    truncation: Union[Truncation, str] = Truncation.HIGH_BYTE,
    premultiply_alpha: bool = False,
) -> PixelGrid:
    """
    Build the pixel grid for a decoded image.

    Sources that expose ``to_array()`` are converted in bulk; any other
    source is queried sample by sample. Both paths produce the same grid.
    """
    truncation = Truncation(truncation)
    rows, cols = grid_shape(config, layout)
    # SQUARE drops columns past the grid edge.
    filled = min(config.width, cols)
    pixels = np.zeros((rows, cols, 4), dtype=np.uint8)

    if hasattr(source, "to_array"):
        samples = _read_region(source, config.height, filled)
        if premultiply_alpha:
            samples[..., :3] = samples[..., :3] * samples[..., 3:4] // CHANNEL_MAX
        pixels[:, :filled] = _truncate_array(samples, truncation)
    else:
        for row in range(config.height):
            for col in range(filled):
                pixels[row, col] = normalize_sample(source.at(col, row), truncation, premultiply_alpha)

    pixels.setflags(write=False)
    return PixelGrid(pixels)


__all__ = [
    "grid_shape",
    "normalize_sample",
    "premultiply",
    "to_pixel_grid",
    "truncate_channel",
]
