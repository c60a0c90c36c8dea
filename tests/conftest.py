import io
import threading

import numpy as np
import pytest
from PIL import Image

RED = (255, 0, 0, 255)
GREEN = (0, 255, 0, 255)
BLUE = (0, 0, 255, 255)
WHITE = (255, 255, 255, 255)


def _encode(pixels, fmt: str = "PNG", **save_kwargs) -> bytes:
    """Encode an (H, W, C) uint8 array or a Pillow image with Pillow."""
    image = pixels if isinstance(pixels, Image.Image) else Image.fromarray(np.asarray(pixels))
    buffer = io.BytesIO()
    image.save(buffer, format=fmt, **save_kwargs)
    return buffer.getvalue()


@pytest.fixture
def encode():
    return _encode


@pytest.fixture
def quad_pixels() -> np.ndarray:
    """2x2 image: red, green on the first row; blue, white on the second."""
    return np.array([[RED, GREEN], [BLUE, WHITE]], dtype=np.uint8)


@pytest.fixture
def quad_png(quad_pixels) -> bytes:
    return _encode(quad_pixels, "PNG")


@pytest.fixture
def gradient_pixels():
    """Deterministic RGBA image of the requested size with distinct pixels."""

    def make(width: int, height: int) -> np.ndarray:
        ys, xs = np.mgrid[0:height, 0:width]
        return np.stack(
            [
                (xs * 3) % 256,
                (ys * 5) % 256,
                (xs + ys) % 256,
                np.full_like(xs, 255),
            ],
            axis=-1,
        ).astype(np.uint8)

    return make


@pytest.fixture
def noise_pixels():
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=(64, 64, 3), dtype=np.uint8)


class RecordingSink:
    """Thread-safe sink that remembers every grid it receives."""

    def __init__(self):
        self._lock = threading.Lock()
        self.grids = []

    def __call__(self, grid):
        with self._lock:
            self.grids.append(grid)

    @property
    def calls(self) -> int:
        with self._lock:
            return len(self.grids)


@pytest.fixture
def sink_factory():
    return RecordingSink


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep a developer's PIXELGRID_* variables and pixelgrid.env out of the tests."""
    import os

    for key in list(os.environ):
        if key.startswith("PIXELGRID_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
