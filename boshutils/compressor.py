"""Creating and unpacking gzip compressed tarballs."""

from __future__ import annotations

import contextlib
import os
import shutil
import tarfile
import tempfile
from dataclasses import dataclass
from typing import Iterable, Protocol, Sequence

from .errors import BoshError, wrap_error

_TEMP_PREFIX = "bosh-platform-disk-TarballCompressor-CompressSpecificFilesInDir"

if hasattr(tarfile, "fully_trusted_filter"):
    _EXTRACT_KWARGS: dict[str, str] = {"filter": "fully_trusted"}
else:
    _EXTRACT_KWARGS = {}


@dataclass(frozen=True)
class CompressorOptions:
    """How an archive is unpacked."""

    same_owner: bool = False
    path_in_archive: str = ""
    strip_components: int = 0


class Compressor(Protocol):
    """Something that packs directories into archives and unpacks them."""

    def compress_files_in_dir(self, directory: str) -> str:
        """Pack everything in ``directory`` and return the archive's path."""

    def compress_specific_files_in_dir(self, directory: str, files: Sequence[str]) -> str:
        """Pack the named entries of ``directory`` and return the archive's path."""

    def decompress_file_to_dir(
        self, tarball_path: str, directory: str, options: CompressorOptions
    ) -> None:
        """Unpack an archive into an existing directory."""

    def clean_up(self, tarball_path: str) -> None:
        """Remove an archive after use."""


class _OwnerAwareTarFile(tarfile.TarFile):
    keep_owner = True

    def chown(self, tarinfo, targetpath, numeric_owner):
        if self.keep_owner:
            super().chown(tarinfo, targetpath, numeric_owner)


def _remove_all(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
        return
    with contextlib.suppress(FileNotFoundError):
        os.remove(path)


def _strip(name: str, count: int) -> str:
    parts = [part for part in name.split("/") if part]
    return "/".join(parts[count:])


def _normalise(name: str) -> str:
    return "/".join(part for part in name.split("/") if part not in ("", "."))


def _within(name: str, wanted: str) -> bool:
    return name == wanted or name.startswith(wanted + "/")


def _select_members(
    members: Iterable[tarfile.TarInfo], options: CompressorOptions
) -> list[tarfile.TarInfo]:
    wanted = _normalise(options.path_in_archive) if options.path_in_archive else None
    selected = []
    matched = False
    for member in members:
        if wanted is not None and not _within(_normalise(member.name), wanted):
            continue
        matched = True
        name = _strip(member.name, options.strip_components)
        if not name:
            continue
        if ".." in name.split("/"):
            raise BoshError(f"Refusing to extract member '{member.name}' outside of the target")
        if member.islnk():
            link = _strip(member.linkname, options.strip_components)
            if not link:
                continue
            member.linkname = link
        member.name = name
        selected.append(member)
    if wanted is not None and not matched:
        raise BoshError(f"{options.path_in_archive}: Not found in archive")
    return selected


@dataclass
class TarballCompressor:
    """Packs and unpacks ``.tgz`` archives."""

    temp_dir: str | None = None

    def compress_files_in_dir(self, directory: str) -> str:
        return self.compress_specific_files_in_dir(directory, ["."])

    def compress_specific_files_in_dir(self, directory: str, files: Sequence[str]) -> str:
        try:
            fd, tarball_path = tempfile.mkstemp(prefix=_TEMP_PREFIX, dir=self.temp_dir)
        except OSError as exc:
            raise wrap_error(exc, "Creating temporary file for tarball") from exc
        os.close(fd)

        try:
            with tarfile.open(tarball_path, "w:gz") as tar:
                for name in files:
                    tar.add(os.path.join(directory, name), arcname=name)
        except (OSError, tarfile.TarError) as exc:
            with contextlib.suppress(OSError):
                _remove_all(tarball_path)
            raise wrap_error(exc, "Creating tarball of '%s'", directory) from exc

        return tarball_path

    def decompress_file_to_dir(
        self, tarball_path: str, directory: str, options: CompressorOptions | None = None
    ) -> None:
        options = options or CompressorOptions()
        if not os.path.isdir(directory):
            raise BoshError(
                f"Extracting '{tarball_path}': directory '{directory}' does not exist"
            )
        try:
            with _OwnerAwareTarFile.open(tarball_path, "r:gz") as tar:
                tar.keep_owner = options.same_owner
                members = _select_members(tar.getmembers(), options)
                tar.extractall(directory, members=members, numeric_owner=False, **_EXTRACT_KWARGS)
        except (OSError, tarfile.TarError) as exc:
            raise wrap_error(exc, "Extracting '%s' to '%s'", tarball_path, directory) from exc

    def clean_up(self, tarball_path: str) -> None:
        _remove_all(tarball_path)