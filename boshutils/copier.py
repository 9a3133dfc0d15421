"""Copying files selected by glob filters into a fresh temporary directory."""

from __future__ import annotations

import contextlib
import glob
import logging
import os
import shutil
import stat
import tempfile
from dataclasses import dataclass
from typing import Iterable, Iterator, Protocol, Sequence

from .errors import BoshError, wrap_error

_LOGGER = logging.getLogger("boshutils.copier")
_TEMP_PREFIX = "bosh-platform-commands-cpCopier-FilteredCopyToTemp"
_TEMP_DIR_PERMISSIONS = 0o755


@dataclass(frozen=True)
class DirToCopy:
    """A source directory and the sub-directory of the destination it is copied into."""

    directory: str
    prefix: str = ""


class Copier(Protocol):
    """Something that copies filtered files into temporary directories."""

    def filtered_multi_copy_to_temp(
        self, dirs: Iterable[DirToCopy], filters: Sequence[str]
    ) -> str:
        """Copy matching files of every directory into one new temporary directory."""

    def filtered_copy_to_temp(self, directory: str, filters: Sequence[str]) -> str:
        """Copy matching files of ``directory`` into a new temporary directory."""

    def clean_up(self, temp_dir: str) -> None:
        """Remove a temporary directory made by this copier."""


def _remove_all(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
        return
    with contextlib.suppress(FileNotFoundError):
        os.remove(path)


@dataclass
class GenericCpCopier:
    """Copies the regular files matching glob filters, keeping their relative layout."""

    logger: logging.Logger = _LOGGER
    temp_dir: str | None = None

    def filtered_copy_to_temp(self, directory: str, filters: Sequence[str]) -> str:
        return self.filtered_multi_copy_to_temp([DirToCopy(directory)], filters)

    def filtered_multi_copy_to_temp(
        self, dirs: Iterable[DirToCopy], filters: Sequence[str]
    ) -> str:
        filters = list(filters)
        try:
            temp_dir = tempfile.mkdtemp(prefix=_TEMP_PREFIX, dir=self.temp_dir)
        except OSError as exc:
            raise wrap_error(exc, "Creating temporary directory") from exc

        try:
            os.chmod(temp_dir, _TEMP_DIR_PERMISSIONS)
        except OSError as exc:
            self.clean_up(temp_dir)
            raise wrap_error(exc, "Fixing permissions on temp dir") from exc

        for dir_to_copy in dirs:
            files = list(self._relative_matches(dir_to_copy.directory, filters))
            try:
                self._copy_files_to_dir(
                    files, dir_to_copy.directory, temp_dir, dir_to_copy.prefix
                )
            except (OSError, BoshError) as exc:
                self.clean_up(temp_dir)
                raise wrap_error(exc, "Copying Files to Temp Dir") from exc

        return temp_dir

    def clean_up(self, temp_dir: str) -> None:
        try:
            _remove_all(temp_dir)
        except OSError as exc:
            self.logger.error("Failed to clean up temporary directory %s: %r", temp_dir, exc)

    @staticmethod
    def _globs(directory: str, filters: Sequence[str]) -> Iterator[str]:
        for pattern in filters:
            src = os.path.normpath(os.path.join(directory, pattern))
            if os.path.isdir(src):
                yield os.path.join(src, "**", "*")
            else:
                yield src

    def _relative_matches(self, directory: str, filters: Sequence[str]) -> Iterator[str]:
        prefix = os.path.normpath(directory)
        for pattern in self._globs(directory, filters):
            for path in glob.glob(pattern, recursive=True, include_hidden=True):
                yield path.removeprefix(prefix).removeprefix(os.sep)

    @staticmethod
    def _copy_files_to_dir(
        files: Iterable[str], src_dir: str, dest_dir: str, dest_prefix: str
    ) -> None:
        dest_dir = os.path.join(dest_dir, dest_prefix)
        for relative_path in files:
            src = os.path.join(src_dir, relative_path)
            dst = os.path.join(dest_dir, relative_path)

            try:
                info = os.stat(src)
            except OSError as exc:
                raise wrap_error(exc, "Getting file info for '%s'", src) from exc
            if stat.S_ISDIR(info.st_mode):
                continue

            containing_dir = os.path.dirname(dst)
            try:
                os.makedirs(containing_dir, exist_ok=True)
            except OSError as exc:
                raise wrap_error(
                    exc, "Making destination directory '%s' for '%s'", containing_dir, src
                ) from exc
            shutil.copyfile(src, dst)