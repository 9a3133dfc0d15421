# boshutils

Building blocks for tools that store and move release artifacts: error
wrapping, content digests, PEM certificate loading, blobstores and file
utilities (filtered copying, moving, tarballs).

## Installation

```
pip install boshutils
```

To run the test suite:

```
pip install "boshutils[test]"
pytest
```

Python 3.11 or later is required. The only third-party dependency is
`cryptography`, used for certificate parsing.

## Errors — `boshutils.errors`

- `BoshError` is the base of the errors the package raises.
- `wrap_error(cause, msg, *args)` returns a `ComplexError` whose message is
  `"<msg % args>: <cause>"`. `wrap_complex_error(cause, err)` does the same
  with an error object you already have. A `None` cause is shown as
  `<nil cause>`. Wrapped chains read outermost first.
- `ComplexError.short_error()` renders the same chain, but uses the
  `short_error()` of each part that has one.
- `UserError(message)` marks an error meant for the end user.
- `MultiError(*errors)` joins several errors, one message per line.

```python
from boshutils.errors import BoshError, wrap_error

try:
    raise BoshError("disk full")
except BoshError as cause:
    err = wrap_error(cause, "Writing blob '%s'", "abc")
    print(err)  # Writing blob 'abc': disk full
```

## Digests — `boshutils.digest`

- `SHA1`, `SHA256` and `SHA512` are the ready-made `Algorithm` values;
  `Algorithm.create_digest(stream)` hashes a binary stream.
  `UnknownAlgorithm` keeps the name of any other algorithm found in a digest
  string; asking it to create a digest raises `BoshError`.
- `Digest(algorithm, value)` holds one hex value (an `algo:` prefix on the
  value is dropped). SHA-1 digests print without a prefix, others as
  `algo:value`. `verify(stream)` and `verify_file_path(path)` raise
  `BoshError` when the content does not match.
- `MultipleDigest(*digests)` holds several digests and prints them joined
  with `;`. Its `algorithm`, `verify` and `verify_file_path` use the strongest
  digest present (sha512, then sha256, then sha1, otherwise the first one);
  two digests of the same algorithm make verification fail.
  `digest_for(algorithm)` picks one digest out.
- `parse_multiple_digest(text)` / `MultipleDigest.from_json(data)` parse a
  `;`-separated string (empty pieces are skipped, unprefixed values are
  sha1, only alphanumeric algorithm names and values are accepted).
  `MultipleDigest.to_json()` writes the JSON string form.
- `new_multiple_digest(stream, algorithms)` digests a seekable stream with
  each algorithm; `multiple_digest_from_path(file_path, algorithms)` does it
  for a file.

```python
from boshutils.digest import SHA256, multiple_digest_from_path, parse_multiple_digest

digest = parse_multiple_digest("sha1:2aae6c35c94fcfb415dbe95f408b9ce91ee846ed")
digest.verify_file_path("release.tgz")  # raises BoshError on mismatch

print(multiple_digest_from_path("release.tgz", [SHA256]))  # sha256:...
```

## Certificates — `boshutils.x509`

`cert_pool_from_pem(pem_certs)` takes PEM text (bytes or str) and returns the
list of `cryptography.x509.Certificate` objects in it. A block that is not a
plain `CERTIFICATE`, trailing text that is not a PEM block, or a certificate
that does not parse raises an error naming its position, e.g.
`Parsing certificate 2: Not a certificate`.

## Blobstores — `boshutils.blobstore`, `boshutils.digest_blobstore`

`Blobstore` is the interface: `get(blob_id)` returns the path of a local copy,
`clean_up(file_name)`, `create(file_name)` returns a new blob id,
`validate()` and `delete(blob_id)`.

- `DummyBlobstore` stores nothing and records every call in `calls`.
- `LocalBlobstore(options, uuid_gen=..., temp_dir=None)` keeps blobs as files
  under `options["blobstore_path"]`, which `validate()` requires to be a
  string.
- `ExternalBlobstore(provider, options, runner, config_file_path, ...)` drives
  a `bosh-blobstore-<provider>` command through a `CommandRunner` you supply
  (`command_exists(name)`, `run_command(name, *args)`). `validate()` checks
  the command exists and writes `options` as JSON to `config_file_path`;
  `get` and `create` call it as `-c <config> get|put <src> <dst>`. `delete`
  is not supported and always raises.

`DigestBlobstore` adds digests: `get(blob_id, digest)` and `create(file_name)`
returning `(blob_id, MultipleDigest)`.

- `DigestVerifiableBlobstore(blobstore, create_algorithms=[SHA1])` verifies
  fetched blobs and digests files before storing them.
- `RetryableBlobstore(blobstore, max_tries, logger=...)` retries `get` and
  `create`, logging each failure; `validate()` rejects `max_tries < 1`.
- `Provider(runner, config_dir, ...)` builds the whole stack:
  `get(store_type, options)` accepts `"dummy"` (`BLOBSTORE_TYPE_DUMMY`),
  `"local"` (`BLOBSTORE_TYPE_LOCAL`) or any external provider name (config in
  `<config_dir>/blobstore-<type>.json`), validates it, and returns a
  `RetryableBlobstore` with three tries over a SHA-1 verifying blobstore.

## File utilities — `boshutils.copier`, `boshutils.mover`, `boshutils.compressor`

- `GenericCpCopier(logger=..., temp_dir=None)`:
  `filtered_copy_to_temp(directory, filters)` and
  `filtered_multi_copy_to_temp(dirs, filters)` copy the regular files matching
  glob filters (`**` and hidden files included; a filter naming a directory
  takes all of it) into a new temporary directory with mode `0755`, keeping
  relative paths. Each `DirToCopy(directory, prefix="")` can be placed under a
  prefix. `clean_up(temp_dir)` removes the result.
- `FileMover().move(old_path, new_path)` renames, falling back to copy and
  remove when the paths are on different devices.
- `TarballCompressor(temp_dir=None)` works with gzipped tarballs through the
  standard library: `compress_files_in_dir(directory)`,
  `compress_specific_files_in_dir(directory, files)`,
  `decompress_file_to_dir(tarball_path, directory, options)` and
  `clean_up(tarball_path)`. `CompressorOptions(same_owner=False,
  path_in_archive="", strip_components=0)` controls unpacking; the target
  directory must exist, and members that would land outside it are refused.

## Test helpers — `boshutils.assertions`

`matches_json_string(obj, expected_json)` and `matches_json_map(obj, expected)`
raise `AssertionError` unless the object's compact, key-sorted JSON form is
exactly what is expected; `lacks_json_key(obj, key)` asserts a key is absent
and returns the keys present. `MatchPath(path).match(actual)` compares paths
after normalising them, with `failure_message` and `negated_failure_message`
for reports.

## What is not included

- There is no command-line tool.
- No `CommandRunner` implementation is shipped: using an `ExternalBlobstore`
  (or a `Provider` with an external store type) requires supplying your own
  runner. The package itself never starts other programs.
- There are no clients for remote storage services; storage is either a local
  directory or whatever the supplied runner reaches.