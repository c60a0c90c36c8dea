"""
Registry of codecs keyed by lower-case format name.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Union

from pixelgrid.errors import CodecError
from pixelgrid.io.fs import get_file_ext
from pixelgrid.ops.codecs.base import Codec
from pixelgrid.ops.codecs.pillow import (
    BmpCodec,
    GifCodec,
    JpegCodec,
    PngCodec,
    TiffCodec,
    WebpCodec,
)

CODECS: Dict[str, Codec] = {
    "png": PngCodec(),
    "jpeg": JpegCodec(),
    "gif": GifCodec(),
    "bmp": BmpCodec(),
    "webp": WebpCodec(),
    "tiff": TiffCodec(),
}

EXTENSIONS: Dict[str, str] = {
    ".png": "png",
    ".jpg": "jpeg",
    ".jpeg": "jpeg",
    ".jpe": "jpeg",
    ".gif": "gif",
    ".bmp": "bmp",
    ".dib": "bmp",
    ".webp": "webp",
    ".tif": "tiff",
    ".tiff": "tiff",
}


def register_codec(name: str, codec: Codec, *extensions: str) -> None:
    """
    Register ``codec`` under ``name``, replacing any codec already registered there.

    Args:
        name: Format name, case-insensitive.
        codec: Codec instance.
        extensions: File extensions (with or without the dot) mapped to this codec.
    """
    if not isinstance(codec, Codec):
        raise TypeError(f"Expected a Codec instance, got {type(codec).__name__}")
    key = name.lower()
    CODECS[key] = codec
    for ext in extensions:
        ext = ext.lower()
        EXTENSIONS[ext if ext.startswith(".") else f".{ext}"] = key


def get_codec(name: str) -> Codec:
    try:
        return CODECS[name.lower()]
    except KeyError:
        raise CodecError(f"No codec registered for format {name!r}") from None


def codec_for_path(path: Union[str, Path]) -> Codec:
    ext = get_file_ext(str(path)).lower()
    if ext not in EXTENSIONS:
        raise CodecError(f"No codec registered for file extension {ext or '(none)'!r}: {path}")
    return get_codec(EXTENSIONS[ext])


def sniff_format(data: bytes) -> Optional[str]:
    """Guess the container format of ``data`` from its magic number."""
    head = bytes(data[:16])
    if head.startswith(b"\x89PNG\r\n\x1a\n"):
        return "png"
    if head.startswith(b"\xff\xd8\xff"):
        return "jpeg"
    if head.startswith((b"GIF87a", b"GIF89a")):
        return "gif"
    if head.startswith(b"BM"):
        return "bmp"
    if head.startswith(b"RIFF") and head[8:12] == b"WEBP":
        return "webp"
    if head.startswith((b"II*\x00", b"MM\x00*")):
        return "tiff"
    return None


def guess_codec(data: bytes) -> Codec:
    fmt = sniff_format(data)
    if fmt is None:
        raise CodecError("Cannot guess image format from stream header")
    return get_codec(fmt)


__all__ = [
    "CODECS",
    "EXTENSIONS",
    "codec_for_path",
    "get_codec",
    "guess_codec",
    "register_codec",
    "sniff_format",
]
