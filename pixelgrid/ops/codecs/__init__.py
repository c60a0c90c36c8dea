"""
Image codecs (format-specific metadata and pixel decoding).
"""

from pixelgrid.ops.codecs.base import (
    ArrayPixelSource,
    Codec,
    FunctionCodec,
    PixelSource,
    as_pixel_source,
)
from pixelgrid.ops.codecs.pillow import (
    AnyImageCodec,
    BmpCodec,
    GifCodec,
    JpegCodec,
    PillowCodec,
    PillowPixelSource,
    PngCodec,
    TiffCodec,
    WebpCodec,
)
from pixelgrid.ops.codecs.registry import (
    CODECS,
    codec_for_path,
    get_codec,
    guess_codec,
    register_codec,
)
