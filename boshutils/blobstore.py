"""Blobstores that keep blobs in a local directory or behind an external CLI."""

from __future__ import annotations

import contextlib
import json
import os
import shutil
import tempfile
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from .errors import BoshError, wrap_error

_BLOBSTORE_PATH_PERMISSIONS = 0o770


def _generate_uuid() -> str:
    return str(uuid.uuid4())


def _make_temp_file(prefix: str, temp_dir: str | None) -> str:
    try:
        fd, path = tempfile.mkstemp(prefix=prefix, dir=temp_dir)
    except OSError as exc:
        raise wrap_error(exc, "Creating temporary file") from exc
    os.close(fd)
    return path


def _remove_all(path: str) -> None:
    """Remove a file or directory tree; a missing path is not an error."""
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
        return
    with contextlib.suppress(FileNotFoundError):
        os.remove(path)


def _unsupported(store_name: str, operation: str) -> BoshError:
    return BoshError(f"{store_name} doesn't implement {operation}")


class CommandRunner(Protocol):
    """Something that can look up and run external commands."""

    def command_exists(self, name: str) -> bool:
        """Return whether an executable called ``name`` can be found."""

    def run_command(self, name: str, *args: str) -> tuple[str, str, int]:
        """Run ``name`` with ``args`` and return stdout, stderr and exit status; raise on failure."""


class Blobstore(Protocol):
    """A store of blobs addressed by identifier."""

    def get(self, blob_id: str) -> str:
        """Fetch a blob into a local file and return the file's path."""

    def clean_up(self, file_name: str) -> None:
        """Remove a file previously returned by :meth:`get`."""

    def create(self, file_name: str) -> str:
        """Store the file at ``file_name`` and return the new blob's identifier."""

    def validate(self) -> None:
        """Raise if the blobstore is not usable as configured."""

    def delete(self, blob_id: str) -> None:
        """Remove a stored blob."""


@dataclass
class DummyBlobstore:
    """A blobstore that stores nothing and never fails.

    Every call is recorded in :attr:`calls` as ``(operation, *arguments)``.
    """

    calls: list[tuple[str, ...]] = field(default_factory=list)

    def _record(self, operation: str, *args: str) -> None:
        self.calls.append((operation, *args))

    def get(self, blob_id: str) -> str:
        self._record("get", blob_id)
        return ""

    def clean_up(self, file_name: str) -> None:
        self._record("clean_up", file_name)

    def create(self, file_name: str) -> str:
        self._record("create", file_name)
        return ""

    def validate(self) -> None:
        self._record("validate")

    def delete(self, blob_id: str) -> None:
        self._record("delete", blob_id)


@dataclass
class LocalBlobstore:
    """A blobstore keeping blobs as files under ``options["blobstore_path"]``."""

    options: dict[str, Any]
    uuid_gen: Callable[[], str] = _generate_uuid
    temp_dir: str | None = None

    @property
    def _path(self) -> str:
        return self.options["blobstore_path"]

    def get(self, blob_id: str) -> str:
        file_name = _make_temp_file("bosh-blobstore-external-Get", self.temp_dir)
        try:
            shutil.copyfile(os.path.join(self._path, blob_id), file_name)
        except OSError as exc:
            _remove_all(file_name)
            raise wrap_error(exc, "Copying file") from exc
        return file_name

    def clean_up(self, file_name: str) -> None:
        with contextlib.suppress(OSError):
            _remove_all(file_name)

    def delete(self, blob_id: str) -> None:
        _remove_all(os.path.join(self._path, blob_id))

    def create(self, file_name: str) -> str:
        try:
            blob_id = self.uuid_gen()
        except Exception as exc:
            raise wrap_error(exc, "Generating blobID") from exc
        try:
            os.makedirs(self._path, mode=_BLOBSTORE_PATH_PERMISSIONS, exist_ok=True)
        except OSError as exc:
            raise wrap_error(exc, "Making blobstore path") from exc
        try:
            shutil.copyfile(file_name, os.path.join(self._path, blob_id))
        except OSError as exc:
            raise wrap_error(exc, "Copying file to blobstore path") from exc
        return blob_id

    def validate(self) -> None:
        if "blobstore_path" not in self.options:
            raise BoshError("missing blobstore_path")
        if not isinstance(self.options["blobstore_path"], str):
            raise BoshError("blobstore_path must be a string")


@dataclass
class ExternalBlobstore:
    """A blobstore driven through a ``bosh-blobstore-<provider>`` command."""

    provider: str
    options: dict[str, Any]
    runner: CommandRunner
    config_file_path: str
    uuid_gen: Callable[[], str] = _generate_uuid
    temp_dir: str | None = None

    @property
    def executable(self) -> str:
        return f"bosh-blobstore-{self.provider}"

    def get(self, blob_id: str) -> str:
        file_name = _make_temp_file("bosh-blobstore-externalBlobstore-Get", self.temp_dir)
        try:
            self._run("get", blob_id, file_name)
        except BoshError:
            with contextlib.suppress(OSError):
                _remove_all(file_name)
            raise
        return file_name

    def clean_up(self, file_name: str) -> None:
        _remove_all(file_name)

    def delete(self, blob_id: str) -> None:
        """Deleting is not supported by the external CLI protocol; always raises."""
        error = _unsupported("externalBlobstore", "Delete")
        raise error

    def create(self, file_name: str) -> str:
        file_path = os.path.abspath(file_name)
        try:
            blob_id = self.uuid_gen()
        except Exception as exc:
            raise wrap_error(exc, "Generating UUID") from exc
        try:
            self._run("put", file_path, blob_id)
        except BoshError as exc:
            raise wrap_error(exc, "Making put command") from exc
        return blob_id

    def validate(self) -> None:
        if not self.runner.command_exists(self.executable):
            raise BoshError(f"executable {self.executable} not found in PATH")
        self._write_config_file()

    def _write_config_file(self) -> None:
        try:
            config_json = json.dumps(self.options, sort_keys=True, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            raise wrap_error(exc, "Marshalling JSON") from exc
        try:
            parent = os.path.dirname(self.config_file_path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as config_file:
                config_file.write(config_json)
        except OSError as exc:
            raise wrap_error(exc, "Writing config file") from exc

    def _run(self, method: str, src: str, dst: str) -> None:
        try:
            self.runner.run_command(
                self.executable, "-c", self.config_file_path, method, src, dst
            )
        except Exception as exc:
            raise wrap_error(exc, "Shelling out to %s cli", self.executable) from exc