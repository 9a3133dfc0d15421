import datetime

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from boshutils.errors import BoshError
from boshutils.x509 import cert_pool_from_pem


def _make_cert(common_name):
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + datetime.timedelta(days=1))
        .sign(key, hashes.SHA256())
    )
    return cert, key


def _pem(cert):
    return cert.public_bytes(serialization.Encoding.PEM)


def test_parses_multiple_certificates():
    first, _ = _make_cert("first")
    second, _ = _make_cert("second")
    pool = cert_pool_from_pem(_pem(first) + _pem(second))
    assert [cert.serial_number for cert in pool] == [first.serial_number, second.serial_number]


def test_accepts_text_and_trailing_whitespace():
    cert, _ = _make_cert("text")
    pool = cert_pool_from_pem(_pem(cert).decode() + "\n  \n")
    assert pool == [cert]


def test_empty_input_gives_empty_pool():
    assert cert_pool_from_pem(b"") == []


def test_missing_pem_block():
    with pytest.raises(BoshError) as info:
        cert_pool_from_pem(b"not a pem")
    assert str(info.value) == "Parsing certificate 1: Missing PEM block"


def test_garbage_after_certificate_is_reported_with_index():
    cert, _ = _make_cert("ok")
    with pytest.raises(BoshError) as info:
        cert_pool_from_pem(_pem(cert) + b"trailing garbage")
    assert str(info.value) == "Parsing certificate 2: Missing PEM block"


def test_non_certificate_block():
    _, key = _make_cert("key")
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    with pytest.raises(BoshError) as info:
        cert_pool_from_pem(key_pem)
    assert str(info.value) == "Parsing certificate 1: Not a certificate"


def test_certificate_block_with_headers():
    cert, _ = _make_cert("headers")
    lines = _pem(cert).split(b"\n")
    with_headers = b"\n".join([lines[0], b"Proc-Type: 4,ENCRYPTED", b""] + lines[1:])
    with pytest.raises(BoshError) as info:
        cert_pool_from_pem(with_headers)
    assert str(info.value) == "Parsing certificate 1: Not a certificate"


def test_invalid_der_is_wrapped():
    data = b"-----BEGIN CERTIFICATE-----\nAAAA\n-----END CERTIFICATE-----\n"
    with pytest.raises(BoshError) as info:
        cert_pool_from_pem(data)
    assert str(info.value).startswith("Parsing certificate 1: ")