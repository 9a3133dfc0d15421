"""Moving files, falling back to copy and delete across devices."""

from __future__ import annotations

import contextlib
import errno
import os
import shutil
from typing import Protocol

_ERROR_NOT_SAME_DEVICE = 0x11


class Mover(Protocol):
    """Something that moves a file from one path to another."""

    def move(self, old_path: str, new_path: str) -> None:
        """Move ``old_path`` to ``new_path``."""


def _is_cross_device(exc: OSError) -> bool:
    if exc.errno == errno.EXDEV:
        return True
    return os.name == "nt" and getattr(exc, "winerror", None) == _ERROR_NOT_SAME_DEVICE


def _copy(src: str, dst: str) -> None:
    if os.path.isdir(src) and not os.path.islink(src):
        shutil.copytree(src, dst, symlinks=True)
    else:
        shutil.copyfile(src, dst)


def _remove_all(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
        return
    with contextlib.suppress(FileNotFoundError):
        os.remove(path)


class FileMover:
    """Moves files by renaming, copying and removing when the rename crosses devices."""

    def move(self, old_path: str, new_path: str) -> None:
        try:
            os.rename(old_path, new_path)
        except OSError as exc:
            if not _is_cross_device(exc):
                raise
            _copy(old_path, new_path)
            _remove_all(old_path)