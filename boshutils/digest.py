"""Content digests: single algorithm digests and semicolon separated multi-digests."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import BinaryIO, Iterable

from .errors import BoshError, wrap_error

_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class Algorithm:
    """A hashing algorithm known to :mod:`hashlib` by ``name``."""

    name: str

    def create_digest(self, stream: BinaryIO) -> Digest:
        """Hash everything readable from ``stream``."""
        try:
            hasher = hashlib.new(self.name)
        except ValueError as exc:
            raise BoshError(f"Unsupported digest algorithm '{self.name}'") from exc
        try:
            for chunk in iter(lambda: stream.read(_CHUNK_SIZE), b""):
                hasher.update(chunk)
        except OSError as exc:
            raise wrap_error(exc, "Copying file for digest calculation") from exc
        return Digest(self, hasher.hexdigest())


@dataclass(frozen=True)
class UnknownAlgorithm(Algorithm):
    """An algorithm named in a digest string but not supported for hashing."""

    def create_digest(self, stream: BinaryIO) -> Digest:
        raise BoshError(f"Unable to create digest of unknown algorithm '{self.name}'")


SHA1 = Algorithm("sha1")
SHA256 = Algorithm("sha256")
SHA512 = Algorithm("sha512")

_KNOWN_ALGORITHMS = {algo.name: algo for algo in (SHA1, SHA256, SHA512)}
_PREFERRED_ALGORITHMS = (SHA512, SHA256, SHA1)


def _open_for_digest(file_path: str) -> BinaryIO:
    try:
        return open(file_path, "rb")
    except OSError as exc:
        raise wrap_error(exc, "Calculating digest of '%s'", file_path) from exc


@dataclass(frozen=True)
class Digest:
    """A digest value computed with one algorithm."""

    algorithm: Algorithm
    value: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", self.value.removeprefix(self.algorithm.name + ":"))

    def __str__(self) -> str:
        if self.algorithm.name == SHA1.name:
            return self.value
        return f"{self.algorithm.name}:{self.value}"

    def verify(self, stream: BinaryIO) -> None:
        """Raise :class:`BoshError` unless ``stream`` hashes to this digest."""
        try:
            computed = self.algorithm.create_digest(stream)
        except BoshError as exc:
            raise wrap_error(exc, "Computing digest from stream") from exc
        if str(self) != str(computed):
            raise BoshError(f"Expected stream to have digest '{self}' but was '{computed}'")

    def verify_file_path(self, file_path: str) -> None:
        """Verify the contents of the file at ``file_path``."""
        with _open_for_digest(file_path) as stream:
            self.verify(stream)


class MultipleDigest:
    """Several digests of the same content, each with a different algorithm."""

    def __init__(self, *digests: Digest) -> None:
        self.digests: tuple[Digest, ...] = tuple(digests)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MultipleDigest):
            return NotImplemented
        return self.digests == other.digests

    def __hash__(self) -> int:
        return hash(self.digests)

    def __repr__(self) -> str:
        return f"MultipleDigest({', '.join(repr(d) for d in self.digests)})"

    def __str__(self) -> str:
        return ";".join(str(digest) for digest in self.digests)

    @property
    def algorithm(self) -> Algorithm:
        """The algorithm of the strongest digest held."""
        return self._strongest().algorithm

    def _strongest(self) -> Digest:
        if not self.digests:
            raise BoshError("no digests have been provided")
        for algo in _PREFERRED_ALGORITHMS:
            for digest in self.digests:
                if digest.algorithm.name == algo.name:
                    return digest
        return self.digests[0]

    def _validate(self) -> None:
        if not self.digests:
            raise BoshError("Expected to find at least one digest")
        seen: set[str] = set()
        for digest in self.digests:
            name = digest.algorithm.name
            if name in seen:
                raise BoshError(
                    f"Multiple digests of the same algorithm '{name}' found in digests '{self}'"
                )
            seen.add(name)

    def verify(self, stream: BinaryIO) -> None:
        """Verify ``stream`` against the strongest digest."""
        self._validate()
        self._strongest().verify(stream)

    def verify_file_path(self, file_path: str) -> None:
        """Verify the contents of the file at ``file_path``."""
        with _open_for_digest(file_path) as stream:
            self.verify(stream)

    def digest_for(self, algorithm: Algorithm) -> Digest:
        """Return the digest made with ``algorithm``."""
        for digest in self.digests:
            if digest.algorithm.name == algorithm.name:
                return digest
        raise BoshError("digest-for-algorithm-not-present")

    def to_json(self) -> str:
        """Serialise as a JSON string value."""
        if not self.digests:
            raise BoshError("no digests have been provided")
        return json.dumps(str(self))

    @classmethod
    def from_json(cls, data: str | bytes) -> MultipleDigest:
        """Parse a (possibly quoted) semicolon separated digest string."""
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        text = data.removeprefix('"').removesuffix('"')
        digests = [
            digest for digest in (_parse_digest(piece) for piece in text.split(";")) if digest
        ]
        if not digests:
            raise BoshError("No digest algorithm found. Supported algorithms: sha1, sha256, sha512")
        result = cls(*digests)
        result._validate()
        return result


def _is_alphanumeric(text: str) -> bool:
    return bool(text) and all(
        ("a" <= ch <= "z") or ("A" <= ch <= "Z") or ch.isdecimal() for ch in text
    )


def _parse_digest(text: str) -> Digest | None:
    if not text:
        return None
    pieces = text.split(":", 1)
    if not all(_is_alphanumeric(piece) for piece in pieces):
        raise BoshError(
            "Unable to parse digest string. "
            "Digest and algorithm key can only contain alpha-numeric characters."
        )
    if len(pieces) == 1:
        # Unprefixed digests are sha1.
        pieces = ["sha1", pieces[0]]
    name, value = pieces
    return Digest(_KNOWN_ALGORITHMS.get(name) or UnknownAlgorithm(name), value)


def parse_multiple_digest(text: str) -> MultipleDigest:
    """Parse a semicolon separated digest string."""
    return MultipleDigest.from_json(text)


def new_multiple_digest(stream: BinaryIO, algorithms: Iterable[Algorithm]) -> MultipleDigest:
    """Digest a seekable ``stream`` once with each of ``algorithms``."""
    algorithms = list(algorithms)
    if not algorithms:
        raise BoshError("must provide at least one algorithm")
    digests = []
    for algo in algorithms:
        stream.seek(0)
        digests.append(algo.create_digest(stream))
    return MultipleDigest(*digests)


def multiple_digest_from_path(file_path: str, algorithms: Iterable[Algorithm]) -> MultipleDigest:
    """Digest the file at ``file_path`` with each of ``algorithms``."""
    with _open_for_digest(file_path) as stream:
        return new_multiple_digest(stream, algorithms)