"""
Exception hierarchy for the decode pipeline.
"""

from __future__ import annotations

import enum
from typing import List, Optional, Sequence


class PixelGridError(Exception):
    """Base class for every error raised by pixelgrid."""


class CodecError(PixelGridError):
    """The byte stream is not valid for the codec, is truncated, or has no usable dimensions."""


class ConfigurationError(PixelGridError):
    """Pipeline settings could not be loaded or are inconsistent."""


class DecodeStage(str, enum.Enum):
    METADATA = "metadata"
    PIXELS = "pixels"
    NORMALIZE = "normalize"
    PUBLISH = "publish"


class DecodeError(PixelGridError):
    """A single asset failed to decode. Always names the asset and the stage."""

    def __init__(self, asset: str, stage: DecodeStage, cause: Optional[BaseException] = None):
        self.asset = asset
        self.stage = DecodeStage(stage)
        self.cause = cause
        message = f"asset {asset!r} failed during {self.stage.value} stage"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class AssetDecodeError(PixelGridError):
    """One or more assets failed to decode."""

    def __init__(self, errors: Sequence[DecodeError]):
        self.errors: List[DecodeError] = list(errors)
        lines = [f"{len(self.errors)} asset(s) failed to decode:"]
        lines.extend(f"  - {e}" for e in self.errors)
        super().__init__("\n".join(lines))


__all__ = [
    "AssetDecodeError",
    "CodecError",
    "ConfigurationError",
    "DecodeError",
    "DecodeStage",
    "PixelGridError",
]
