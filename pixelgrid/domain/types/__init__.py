"""
Domain models (image metadata, pixel grids, decode tasks and results).
"""
from pixelgrid.domain.types.grid import (
    RGBA,
    GridLayout,
    ImageConfig,
    PixelGrid,
    Truncation,
)
from pixelgrid.domain.types.task import (
    DecodeResult,
    DecodeTask,
    TaskState,
    raise_for_failures,
    tasks_from_dir,
)
