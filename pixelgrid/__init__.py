"""
Public package interface for pixelgrid.

pixelgrid decodes encoded raster assets (PNG, JPEG, GIF, ...) concurrently and
normalizes each one into an immutable grid of 8-bit RGBA samples, ready for a
renderer that paints a fixed-size texture.
"""

from __future__ import annotations

from pixelgrid.errors import (
    AssetDecodeError,
    CodecError,
    ConfigurationError,
    DecodeError,
    DecodeStage,
    PixelGridError,
)
from pixelgrid.domain.types import (
    RGBA,
    DecodeResult,
    DecodeTask,
    GridLayout,
    ImageConfig,
    PixelGrid,
    TaskState,
    Truncation,
    raise_for_failures,
    tasks_from_dir,
)
from pixelgrid.io.env import PipelineSettings, configure_logging, load_settings
from pixelgrid.ops.codecs import (
    CODECS,
    AnyImageCodec,
    ArrayPixelSource,
    BmpCodec,
    Codec,
    FunctionCodec,
    GifCodec,
    JpegCodec,
    PillowCodec,
    PixelSource,
    PngCodec,
    TiffCodec,
    WebpCodec,
    codec_for_path,
    get_codec,
    guess_codec,
    register_codec,
)
from pixelgrid.ops.normalize import to_pixel_grid, truncate_channel
from pixelgrid.ops.pipeline import (
    DecodeHandle,
    DecodeScheduler,
    decode_all,
    decode_bytes,
    decode_task,
)

__version__ = "0.1.0"
