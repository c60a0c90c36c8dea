from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional, Union

from pydantic import Field

from pixelgrid.domain.types.base import FrozenModel
from pixelgrid.domain.types.grid import PixelGrid
from pixelgrid.errors import AssetDecodeError, DecodeError
from pixelgrid.io.fs import get_file_name_with_ext, list_files, read_bytes
from pixelgrid.ops.codecs.base import Codec, ConfigFn, FunctionCodec, ImageFn

Sink = Callable[[PixelGrid], Any]


class TaskState(str, enum.Enum):
    CREATED = "created"
    METADATA_DECODING = "metadata_decoding"
    PIXEL_DECODING = "pixel_decoding"
    NORMALIZING = "normalizing"
    PUBLISHED = "published"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskState.PUBLISHED, TaskState.FAILED)


class DecodeTask(FrozenModel):
    """
    One image asset and everything needed to decode it.

    Nothing is validated here; a bad stream only fails once it is decoded.
    """

    name: str = Field(description="Label used in logs and error reports")
    data: bytes = Field(repr=False, description="Encoded image")
    codec: Codec
    sink: Optional[Sink] = Field(default=None, repr=False)

    @classmethod
    def from_functions(
        cls,
        name: str,
        data: bytes,
        sink: Optional[Sink],
        decode_config: ConfigFn,
        decode_image: ImageFn,
    ) -> "DecodeTask":
        """Build a task from a metadata decode function and a pixel decode function."""
        return cls(name=name, data=data, sink=sink, codec=FunctionCodec(decode_config, decode_image))

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        sink: Optional[Sink] = None,
        codec: Optional[Codec] = None,
        name: Optional[str] = None,
    ) -> "DecodeTask":
        """Read an image file; the codec is picked from the extension unless given."""
        from pixelgrid.ops.codecs.registry import codec_for_path

        codec = codec or codec_for_path(path)
        return cls(
            name=name or get_file_name_with_ext(str(path)),
            data=read_bytes(path),
            codec=codec,
            sink=sink,
        )


def tasks_from_dir(dir_path: Union[str, Path], recursive: bool = False) -> List[DecodeTask]:
    """One task per file in ``dir_path`` with a registered image extension."""
    from pixelgrid.ops.codecs.registry import EXTENSIONS

    return [DecodeTask.from_file(p) for p in list_files(dir_path, recursive, extensions=EXTENSIONS)]


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of one decode task: a published grid or the error that stopped it."""

    name: str
    state: TaskState
    grid: Optional[PixelGrid] = None
    error: Optional[DecodeError] = None

    @property
    def ok(self) -> bool:
        return self.state == TaskState.PUBLISHED

    def unwrap(self) -> PixelGrid:
        if self.error is not None:
            raise self.error
        assert self.grid is not None
        return self.grid


def raise_for_failures(results: List[DecodeResult]) -> None:
    """Raise :class:`AssetDecodeError` if any result failed."""
    errors = [r.error for r in results if r.error is not None]
    if errors:
        raise AssetDecodeError(errors)
