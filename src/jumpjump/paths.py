"""Path canonicalization for locations added to the index."""

import os
from pathlib import Path
from typing import Union


def canonicalize_path(path: Union[str, Path]) -> str:
    """Turn a user supplied path into the stored location form.

    Expands ``~``, makes the path absolute against the working directory
    and resolves ``.`` and ``..`` lexically. Symlinks are left alone and
    the path does not have to exist.

    Args:
        path: Path as given on the command line

    Returns:
        Absolute path with forward slashes

    Raises:
        ValueError: If path is empty
        OSError: If the working directory no longer exists
    """
    if not str(path):
        raise ValueError("Path cannot be empty")

    expanded = Path(path).expanduser()
    return Path(os.path.abspath(expanded)).as_posix()
