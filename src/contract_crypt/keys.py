from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Iterable

from asn1crypto import keys, pem, x509

from .exceptions import (
    CertificateParseError,
    ParseError,
    UnsupportedKeyTypeError,
    format_exception,
)

_logger = logging.getLogger("contract_crypt.keys")

PUBLIC_KEY_PEM_TYPES = ("PUBLIC KEY", "RSA PUBLIC KEY", "CERTIFICATE")
PRIVATE_KEY_PEM_TYPES = ("PRIVATE KEY", "RSA PRIVATE KEY")

# RSAES-PKCS1-v1_5 needs at least 11 bytes of padding per block.
PKCS1V15_OVERHEAD = 11


@dataclass(frozen=True)
class PublicKeyHandle:
    """
    RSA public key reduced to its modulus and exponent.

    Keys loaded from a SubjectPublicKeyInfo block, a PKCS#1 block or a
    certificate compare equal and re-encode to the same DER bytes.
    """

    modulus: int
    public_exponent: int

    def to_asn1(self) -> keys.PublicKeyInfo:
        return keys.PublicKeyInfo(
            {
                "algorithm": {"algorithm": "rsa"},
                "public_key": keys.RSAPublicKey(
                    {
                        "modulus": self.modulus,
                        "public_exponent": self.public_exponent,
                    }
                ),
            }
        )

    @property
    def der(self) -> bytes:
        return self.to_asn1().dump()

    @property
    def pem(self) -> bytes:
        return pem.armor("PUBLIC KEY", self.der)

    @property
    def key_size(self) -> int:
        return self.modulus.bit_length()

    @property
    def max_message_length(self) -> int:
        return (self.key_size + 7) // 8 - PKCS1V15_OVERHEAD

    def fingerprint(self) -> str:
        return fingerprint_der(self.der)


@dataclass(frozen=True)
class PrivateKeyHandle:
    """RSA private key held as PKCS#8 DER together with its public half."""

    der: bytes = field(repr=False)
    public_key: PublicKeyHandle

    @property
    def pem(self) -> bytes:
        return pem.armor("PRIVATE KEY", self.der)

    @property
    def key_size(self) -> int:
        return self.public_key.key_size

    def fingerprint(self) -> str:
        return self.public_key.fingerprint()


def fingerprint_der(der: bytes) -> str:
    """Lowercase hex SHA-256 over DER bytes."""
    return hashlib.sha256(der).hexdigest()


def format_serial(serial_number: int) -> str:
    """Render a serial number the way ``openssl x509 -serial`` prints it."""
    sign = "-" if serial_number < 0 else ""
    digits = f"{abs(serial_number):X}"
    if len(digits) % 2:
        digits = "0" + digits
    return sign + digits


def _unarmor(
    data: bytes | str,
    accepted_types: tuple[str, ...],
    error_cls: type[ParseError] = ParseError,
) -> tuple[str | None, bytes]:
    if isinstance(data, str):
        payload = data.encode("utf-8")
    else:
        payload = bytes(data)

    if not payload.strip():
        raise error_cls("Key material is empty.")

    if pem.detect(payload):
        try:
            pem_type, _headers, der_bytes = pem.unarmor(payload)
        except ValueError as exc:
            raise error_cls(f"Invalid PEM block: {format_exception(exc)}") from exc
        if pem_type not in accepted_types:
            raise error_cls(
                f"Unexpected PEM type '{pem_type}'. "
                f"Expected one of: {', '.join(accepted_types)}."
            )
        return pem_type, der_bytes
    return None, payload


def _require_rsa(algorithm: str) -> None:
    if algorithm != "rsa":
        raise UnsupportedKeyTypeError(
            f"Only RSA keys are supported, received key algorithm '{algorithm}'."
        )


def _handle_from_public_key_info(info: keys.PublicKeyInfo) -> PublicKeyHandle:
    _require_rsa(info.algorithm)
    parsed = info["public_key"].parsed
    return PublicKeyHandle(
        modulus=parsed["modulus"].native,
        public_exponent=parsed["public_exponent"].native,
    )


def load_certificate(data: bytes | str) -> x509.Certificate:
    _pem_type, der_bytes = _unarmor(data, ("CERTIFICATE",), CertificateParseError)
    try:
        certificate = x509.Certificate.load(der_bytes)
        # Parsing is lazy; touch the fields callers rely on.
        _ = certificate.serial_number
        _ = certificate.public_key.algorithm
    except (ValueError, TypeError, KeyError) as exc:
        raise CertificateParseError(
            f"Invalid X.509 certificate: {format_exception(exc)}"
        ) from exc
    return certificate


def public_key_from_certificate(certificate: x509.Certificate) -> PublicKeyHandle:
    try:
        return _handle_from_public_key_info(certificate.public_key)
    except (ValueError, TypeError, KeyError) as exc:
        raise CertificateParseError(
            f"Certificate public key is malformed: {format_exception(exc)}"
        ) from exc


def load_public_key(data: bytes | str) -> PublicKeyHandle:
    """
    Load an RSA public key from PEM or DER input.

    Accepts a SubjectPublicKeyInfo block (``PUBLIC KEY``), a PKCS#1 block
    (``RSA PUBLIC KEY``) or an X.509 certificate, in which case the embedded
    key is returned. Bare DER input is read as SubjectPublicKeyInfo.
    """
    pem_type, der_bytes = _unarmor(data, PUBLIC_KEY_PEM_TYPES)
    if pem_type == "CERTIFICATE":
        return public_key_from_certificate(load_certificate(data))

    try:
        if pem_type == "RSA PUBLIC KEY":
            parsed = keys.RSAPublicKey.load(der_bytes)
            handle = PublicKeyHandle(
                modulus=parsed["modulus"].native,
                public_exponent=parsed["public_exponent"].native,
            )
        else:
            handle = _handle_from_public_key_info(keys.PublicKeyInfo.load(der_bytes))
    except UnsupportedKeyTypeError:
        raise
    except (ValueError, TypeError, KeyError) as exc:
        raise ParseError(f"Invalid public key: {format_exception(exc)}") from exc

    _logger.debug("Loaded RSA public key key_size=%d", handle.key_size)
    return handle


def load_public_keys(items: Iterable[bytes | str]) -> list[PublicKeyHandle]:
    """Load every item or fail with the first error."""
    return [load_public_key(item) for item in items]


def load_private_key(data: bytes | str) -> PrivateKeyHandle:
    """Load an RSA private key from a PKCS#8 or PKCS#1 PEM block, or PKCS#8 DER."""
    pem_type, der_bytes = _unarmor(data, PRIVATE_KEY_PEM_TYPES)
    try:
        if pem_type == "RSA PRIVATE KEY":
            info = keys.PrivateKeyInfo.wrap(keys.RSAPrivateKey.load(der_bytes), "rsa")
        else:
            info = keys.PrivateKeyInfo.load(der_bytes)
        _require_rsa(info.algorithm)
        parsed = info["private_key"].parsed
        public_key = PublicKeyHandle(
            modulus=parsed["modulus"].native,
            public_exponent=parsed["public_exponent"].native,
        )
        pkcs8_der = info.dump()
    except UnsupportedKeyTypeError:
        raise
    except (ValueError, TypeError, KeyError) as exc:
        raise ParseError(f"Invalid private key: {format_exception(exc)}") from exc

    _logger.debug("Loaded RSA private key key_size=%d", public_key.key_size)
    return PrivateKeyHandle(der=pkcs8_der, public_key=public_key)
