import os
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union


def iter_files(
    dir_path: Union[str, Path],
    recursive: bool = False,
    extensions: Optional[Iterable[str]] = None,
) -> Iterator[str]:
    """
    Yield file paths in ``dir_path`` in sorted order.

    :param dir_path: Directory to scan.
    :type dir_path: str or Path
    :param recursive: Descend into subdirectories.
    :type recursive: bool
    :param extensions: Keep only files with one of these extensions (case-insensitive, with dot).
    :type extensions: Iterable[str], optional
    :returns: Iterator over file paths
    :rtype: Iterator[str]
    """
    dir_path = Path(dir_path)
    if not dir_path.exists():
        raise FileNotFoundError(f"Directory not found: {dir_path}")
    if not dir_path.is_dir():
        raise NotADirectoryError(f"Not a directory: {dir_path}")
    allowed = {e.lower() for e in extensions} if extensions is not None else None
    candidates = dir_path.rglob("*") if recursive else dir_path.iterdir()
    for p in sorted(candidates):
        if not p.is_file():
            continue
        if allowed is not None and p.suffix.lower() not in allowed:
            continue
        yield str(p)


def list_files(
    dir_path: Union[str, Path],
    recursive: bool = False,
    extensions: Optional[Iterable[str]] = None,
) -> List[str]:
    return list(iter_files(dir_path, recursive, extensions))


def read_bytes(path: Union[str, Path]) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def get_file_name(path: str) -> str:
    """
    Extracts file name from a given path.

    :param path: Path to file.
    :type path: str
    :returns: File name without extension
    :rtype: :class:`str`
    :Usage example:

     .. code-block::

        from pixelgrid.io.fs import get_file_name

        get_file_name("/srv/assets/maps/sus.png")
        # Output: sus
    """
    return os.path.splitext(os.path.basename(path))[0]


def get_file_ext(path: str) -> str:
    """
    Extracts file extension from a given path.

    :param path: Path to file.
    :type path: str
    :returns: File extension without name
    :rtype: :class:`str`
    :Usage example:

     .. code-block::

        from pixelgrid.io.fs import get_file_ext

        get_file_ext("/srv/assets/maps/sus.png")
        # Output: .png
    """
    return os.path.splitext(os.path.basename(path))[1]


def get_file_name_with_ext(path: str) -> str:
    return os.path.basename(path)
