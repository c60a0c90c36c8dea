"""
Tests for building decode tasks from files on disk.
"""

import pytest

from pixelgrid import DecodeScheduler, DecodeTask, JpegCodec, PngCodec, tasks_from_dir
from pixelgrid.errors import CodecError
from pixelgrid.io.fs import get_file_ext, get_file_name, get_file_name_with_ext, list_files


@pytest.fixture
def asset_dir(tmp_path, encode, quad_pixels, noise_pixels):
    root = tmp_path / "assets"
    (root / "nested").mkdir(parents=True)
    (root / "sus.png").write_bytes(encode(quad_pixels, "PNG"))
    (root / "dQw4w9WgXcQ.JPG").write_bytes(encode(noise_pixels, "JPEG"))
    (root / "readme.txt").write_text("not an image")
    (root / "nested" / "deep.png").write_bytes(encode(quad_pixels, "PNG"))
    return root


def test_from_file(asset_dir, sink_factory):
    sink = sink_factory()
    task = DecodeTask.from_file(asset_dir / "sus.png", sink=sink)
    assert task.name == "sus.png"
    assert isinstance(task.codec, PngCodec)
    assert task.sink is sink


def test_from_file_with_explicit_codec_and_name(asset_dir):
    task = DecodeTask.from_file(asset_dir / "sus.png", codec=JpegCodec(), name="mislabelled")
    assert task.name == "mislabelled"
    assert isinstance(task.codec, JpegCodec)


def test_from_file_unknown_extension(asset_dir):
    with pytest.raises(CodecError):
        DecodeTask.from_file(asset_dir / "readme.txt")


def test_tasks_from_dir(asset_dir):
    tasks = tasks_from_dir(asset_dir)
    assert sorted(t.name for t in tasks) == ["dQw4w9WgXcQ.JPG", "sus.png"]
    recursive = tasks_from_dir(asset_dir, recursive=True)
    assert sorted(t.name for t in recursive) == ["dQw4w9WgXcQ.JPG", "deep.png", "sus.png"]


def test_decode_directory(asset_dir):
    results = DecodeScheduler().run(tasks_from_dir(asset_dir, recursive=True))
    assert all(r.ok for r in results)
    shapes = {r.name: (r.grid.height, r.grid.width) for r in results}
    assert shapes == {"dQw4w9WgXcQ.JPG": (64, 64), "deep.png": (2, 2), "sus.png": (2, 2)}


def test_list_files(asset_dir):
    assert len(list_files(asset_dir)) == 3
    assert len(list_files(asset_dir, recursive=True, extensions=[".png"])) == 2
    with pytest.raises(FileNotFoundError):
        list_files(asset_dir / "missing")
    with pytest.raises(NotADirectoryError):
        list_files(asset_dir / "sus.png")


def test_file_name_helpers():
    assert get_file_name("/srv/assets/maps/sus.png") == "sus"
    assert get_file_ext("/srv/assets/maps/sus.png") == ".png"
    assert get_file_name_with_ext("/srv/assets/maps/sus.png") == "sus.png"
