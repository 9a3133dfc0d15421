"""Blobstores that check content digests, retry failures, and a factory for them."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from .blobstore import Blobstore, CommandRunner, DummyBlobstore, ExternalBlobstore, LocalBlobstore
from .digest import SHA1, Algorithm, Digest, MultipleDigest
from .errors import BoshError, wrap_error

BLOBSTORE_TYPE_DUMMY = "dummy"
BLOBSTORE_TYPE_LOCAL = "local"

_LOGGER = logging.getLogger("boshutils.blobstore")


class DigestBlobstore(Protocol):
    """A blobstore whose blobs are checked against digests."""

    def get(self, blob_id: str, digest: Digest | MultipleDigest) -> str:
        """Fetch a blob into a local file, verify it and return the file's path."""

    def clean_up(self, file_name: str) -> None:
        """Remove a file previously returned by :meth:`get`."""

    def create(self, file_name: str) -> tuple[str, MultipleDigest]:
        """Store a file and return the blob identifier and the file's digest."""

    def validate(self) -> None:
        """Raise if the blobstore is not usable as configured."""

    def delete(self, blob_id: str) -> None:
        """Remove a stored blob."""


@dataclass
class DigestVerifiableBlobstore:
    """Wraps a blobstore, verifying fetched blobs and digesting created ones."""

    blobstore: Blobstore
    create_algorithms: list[Algorithm] = field(default_factory=lambda: [SHA1])

    def get(self, blob_id: str, digest: Digest | MultipleDigest) -> str:
        try:
            file_name = self.blobstore.get(blob_id)
        except Exception as exc:
            raise wrap_error(exc, "Getting blob from inner blobstore") from exc
        with open(file_name, "rb") as stream:
            try:
                digest.verify(stream)
            except BoshError as exc:
                raise wrap_error(exc, "Checking downloaded blob '%s'", blob_id) from exc
        return file_name

    def delete(self, blob_id: str) -> None:
        self.blobstore.delete(blob_id)

    def clean_up(self, file_name: str) -> None:
        self.blobstore.clean_up(file_name)

    def create(self, file_name: str) -> tuple[str, MultipleDigest]:
        digests = []
        for algorithm in self.create_algorithms:
            with open(file_name, "rb") as stream:
                digests.append(algorithm.create_digest(stream))
        if not digests:
            raise BoshError("no digests have been provided")
        blob_id = self.blobstore.create(file_name)
        return blob_id, MultipleDigest(*digests)

    def validate(self) -> None:
        self.blobstore.validate()


@dataclass
class RetryableBlobstore:
    """Wraps a digest blobstore, retrying fetches and creations up to ``max_tries``."""

    blobstore: DigestBlobstore
    max_tries: int
    logger: logging.Logger = _LOGGER

    def get(self, blob_id: str, digest: Digest | MultipleDigest) -> str:
        last_error: Exception | None = None
        for attempt in range(1, self.max_tries + 1):
            try:
                return self.blobstore.get(blob_id, digest)
            except Exception as exc:
                last_error = exc
                self.logger.info(
                    "Failed to get blob with error '%s', attempt %d out of %d",
                    exc, attempt, self.max_tries,
                )
        raise wrap_error(last_error, "Getting blob from inner blobstore") from last_error

    def clean_up(self, file_name: str) -> None:
        self.blobstore.clean_up(file_name)

    def delete(self, blob_id: str) -> None:
        self.blobstore.delete(blob_id)

    def create(self, file_name: str) -> tuple[str, MultipleDigest]:
        last_error: Exception | None = None
        for attempt in range(1, self.max_tries + 1):
            try:
                return self.blobstore.create(file_name)
            except Exception as exc:
                last_error = exc
                self.logger.info(
                    "Failed to create blob with error %s, attempt %d out of %d",
                    exc, attempt, self.max_tries,
                )
        raise wrap_error(last_error, "Creating blob in inner blobstore") from last_error

    def validate(self) -> None:
        if self.max_tries < 1:
            raise BoshError("Max tries must be > 0")
        self.blobstore.validate()


@dataclass
class Provider:
    """Builds validated, digest-checking, retrying blobstores by type."""

    runner: CommandRunner
    config_dir: str
    logger: logging.Logger = _LOGGER
    uuid_gen: Callable[[], str] | None = None
    temp_dir: str | None = None

    def _store_settings(self) -> dict[str, Any]:
        settings: dict[str, Any] = {}
        if self.uuid_gen is not None:
            settings["uuid_gen"] = self.uuid_gen
        if self.temp_dir is not None:
            settings["temp_dir"] = self.temp_dir
        return settings

    def get(self, store_type: str, options: dict[str, Any]) -> RetryableBlobstore:
        blobstore: Blobstore
        if store_type == BLOBSTORE_TYPE_DUMMY:
            blobstore = DummyBlobstore()
        elif store_type == BLOBSTORE_TYPE_LOCAL:
            blobstore = LocalBlobstore(options, **self._store_settings())
        else:
            blobstore = ExternalBlobstore(
                store_type,
                options,
                self.runner,
                os.path.join(self.config_dir, f"blobstore-{store_type}.json"),
                **self._store_settings(),
            )

        verifiable = DigestVerifiableBlobstore(blobstore, [SHA1])
        retryable = RetryableBlobstore(verifiable, 3, self.logger)

        try:
            blobstore.validate()
        except BoshError as exc:
            raise wrap_error(exc, "Validating blobstore") from exc
        return retryable