from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from contract_crypt import (
    NativeBackend,
    OpenSSLBackend,
    PrivateKeyHandle,
    load_private_key,
)

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"

# Produced with the openssl CLI from the se-encrypt-basic fixtures.
FIXTURE_FINGERPRINT = "0f184746607fe8f3e2702bf90ab1558b562b1d1564fa0d7614f191af639999aa"
FIXTURE_SERIAL = "5A3F19C2B7"

TEST_RSA_BITS = 2048


def read_fixture(name: str) -> bytes:
    return (FIXTURES_DIR / name).read_bytes()


@pytest.fixture(scope="session")
def native_backend() -> NativeBackend:
    return NativeBackend(rsa_key_bits=TEST_RSA_BITS)


@pytest.fixture(scope="session")
def openssl_backend() -> OpenSSLBackend:
    openssl_bin = shutil.which("openssl")
    if openssl_bin is None:
        pytest.skip("openssl binary was not found on PATH.")
    return OpenSSLBackend(openssl_bin, timeout=60, rsa_key_bits=TEST_RSA_BITS)


@pytest.fixture(scope="session")
def native_private_key(native_backend: NativeBackend) -> PrivateKeyHandle:
    return native_backend.private_key()


@pytest.fixture(scope="session")
def other_private_key(native_backend: NativeBackend) -> PrivateKeyHandle:
    return native_backend.private_key()


@pytest.fixture(scope="session")
def fixture_private_key() -> PrivateKeyHandle:
    return load_private_key(read_fixture("se-encrypt-basic.key"))
