"""Loading sets of X.509 certificates from PEM text."""

from __future__ import annotations

import base64
import binascii
import itertools
import re

from cryptography import x509

from .errors import BoshError, wrap_error

_PEM_BLOCK = re.compile(
    rb"-----BEGIN ([^\r\n]*?)-----[ \t]*\r?\n(.*?)-----END \1-----[^\r\n]*(?:\r?\n|$)",
    re.DOTALL,
)


def _decode_block(data: bytes) -> tuple[tuple[str, dict[str, str], bytes] | None, bytes]:
    """Decode the first PEM block in ``data``; return it and the remaining bytes."""
    match = _PEM_BLOCK.search(data)
    if match is None:
        return None, data
    block_type = match.group(1).decode("ascii", "replace")
    lines = match.group(2).splitlines()
    headers: dict[str, str] = {}
    position = 0
    while position < len(lines) and b":" in lines[position]:
        key, _, value = lines[position].partition(b":")
        headers[key.strip().decode("ascii", "replace")] = value.strip().decode("ascii", "replace")
        position += 1
    payload = b"".join(line.strip() for line in lines[position:])
    try:
        body = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return None, data
    return (block_type, headers, body), data[match.end():]


def cert_pool_from_pem(pem_certs: bytes | str) -> list[x509.Certificate]:
    """Parse every certificate in ``pem_certs``; anything else is an error."""
    if isinstance(pem_certs, str):
        pem_certs = pem_certs.encode("utf-8")
    certificates: list[x509.Certificate] = []
    rest = pem_certs
    for index in itertools.count(1):
        if not rest:
            break
        block, rest = _decode_block(rest)
        if block is None:
            if rest.strip():
                raise BoshError(f"Parsing certificate {index}: Missing PEM block")
            break
        block_type, headers, body = block
        if block_type != "CERTIFICATE" or headers:
            raise BoshError(f"Parsing certificate {index}: Not a certificate")
        try:
            certificates.append(x509.load_der_x509_certificate(body))
        except ValueError as exc:
            raise wrap_error(exc, "Parsing certificate %d", index) from exc
    return certificates