"""
Backend that drives the ``openssl`` command line binary.

Every primitive spawns one ``openssl`` process through ``subprocess.run``,
which owns the pipes and reaps (or kills, on timeout) the child before
returning. Key material and passwords that ``openssl`` can only read from
files are written into a private temporary directory that is removed when
the call returns, including on error paths.

The produced artifacts are byte-compatible with :mod:`contract_crypt.native_backend`.
"""

from __future__ import annotations

import logging
import subprocess
import tempfile
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

from .backend import (
    KEY_LENGTH,
    PBKDF2_DIGEST,
    PBKDF2_ITERATIONS,
    SIGNATURE_DIGEST,
    validate_password_length,
)
from .config import DEFAULT_RSA_KEY_BITS, EncryptionConfig
from .exceptions import (
    CertificateParseError,
    ContractCryptError,
    DecryptionError,
    ExternalToolError,
    MessageTooLargeError,
    ParseError,
    SignatureError,
    format_exception,
)
from .keys import PrivateKeyHandle, PublicKeyHandle, load_private_key, load_public_key

_logger = logging.getLogger("contract_crypt.openssl")

SYMMETRIC_CIPHER_ARGS = (
    "-aes-256-cbc",
    "-salt",
    "-pbkdf2",
    "-iter",
    str(PBKDF2_ITERATIONS),
    "-md",
    PBKDF2_DIGEST,
)
PKCS1_PADDING_ARGS = ("-pkeyopt", "rsa_padding_mode:pkcs1")


@contextmanager
def _scratch_files(**files: bytes) -> Iterator[dict[str, Path]]:
    """Write ``files`` into a private temporary directory for the duration of the block."""
    with tempfile.TemporaryDirectory(prefix="contract-crypt-") as workdir:
        paths: dict[str, Path] = {}
        for name, content in files.items():
            path = Path(workdir) / name
            path.write_bytes(content)
            paths[name] = path
        yield paths


def _validate_password(password: bytes) -> None:
    if not password:
        raise ValueError("Password must not be empty.")
    if b"\n" in password or b"\r" in password or b"\x00" in password:
        raise ValueError(
            "Password must be a single line without NUL bytes for the openssl backend."
        )


class OpenSSLBackend:
    """Backend implemented by invoking the ``openssl`` binary."""

    name = "openssl"

    def __init__(
        self,
        openssl_bin: str = "openssl",
        *,
        timeout: float | None = None,
        rsa_key_bits: int = DEFAULT_RSA_KEY_BITS,
    ) -> None:
        self._openssl_bin = openssl_bin
        self._timeout = timeout
        self._rsa_key_bits = rsa_key_bits

    @classmethod
    def from_config(cls, config: EncryptionConfig) -> "OpenSSLBackend":
        return cls(
            config.resolved_openssl_bin(),
            timeout=config.tool_timeout,
            rsa_key_bits=config.rsa_key_bits,
        )

    @property
    def openssl_bin(self) -> str:
        return self._openssl_bin

    def _execute(
        self, args: Sequence[str], input_bytes: bytes = b""
    ) -> subprocess.CompletedProcess[bytes]:
        command = (self._openssl_bin, *args)
        try:
            return subprocess.run(
                command,
                input=input_bytes,
                capture_output=True,
                timeout=self._timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            _logger.exception("openssl %s timed out after %ss", args[0], self._timeout)
            raise ExternalToolError(
                f"openssl {args[0]} timed out after {self._timeout}s.",
                command=command,
            ) from exc
        except OSError as exc:
            _logger.exception("Failed to start %s", self._openssl_bin)
            raise ExternalToolError(
                f"Failed to start {self._openssl_bin}: {format_exception(exc)}",
                command=command,
            ) from exc

    def _run(
        self,
        args: Sequence[str],
        input_bytes: bytes = b"",
        *,
        failure: type[ContractCryptError] = ExternalToolError,
    ) -> bytes:
        proc = self._execute(args, input_bytes)
        if proc.returncode != 0:
            stderr = proc.stderr.decode("utf-8", errors="replace").strip()
            _logger.warning(
                "openssl %s exited with status %d", args[0], proc.returncode
            )
            message = f"openssl {args[0]} failed with exit status {proc.returncode}: {stderr}"
            if failure is ExternalToolError:
                raise ExternalToolError(
                    message,
                    command=(self._openssl_bin, *args),
                    returncode=proc.returncode,
                    stderr=stderr,
                )
            raise failure(message)
        return proc.stdout

    def version(self) -> str:
        return self._run(("version",)).decode("utf-8", errors="replace").strip()

    def is_available(self) -> bool:
        try:
            version = self.version()
        except ExternalToolError:
            return False
        _logger.debug("Detected %s", version)
        return True

    def _sha256_hex(self, data: bytes) -> str:
        output = self._run(("dgst", "-sha256", "-r"), data)
        return output.split()[0].decode("ascii").lower()

    def random_password(self, count: int = KEY_LENGTH) -> bytes:
        """Return ``count`` characters drawn from the base64 alphabet."""
        validate_password_length(count)
        output = self._run(("rand", "-base64", str(count)))
        return b"".join(output.split())[:count]

    def private_key(self, bits: int | None = None) -> PrivateKeyHandle:
        key_size = bits or self._rsa_key_bits
        output = self._run(
            ("genpkey", "-algorithm", "RSA", "-pkeyopt", f"rsa_keygen_bits:{key_size}")
        )
        _logger.info("Generated RSA private key key_size=%d", key_size)
        return load_private_key(output)

    def public_key(self, private_key: PrivateKeyHandle) -> PublicKeyHandle:
        output = self._run(("pkey", "-pubout"), private_key.pem, failure=ParseError)
        return load_public_key(output)

    def asymmetric_encrypt(self, public_key: PublicKeyHandle, message: bytes) -> bytes:
        if len(message) > public_key.max_message_length:
            raise MessageTooLargeError(
                f"Message of {len(message)} bytes exceeds the "
                f"{public_key.max_message_length} byte limit of a "
                f"{public_key.key_size}-bit RSA key."
            )
        with _scratch_files(**{"public.pem": public_key.pem}) as paths:
            ciphertext = self._run(
                (
                    "pkeyutl",
                    "-encrypt",
                    "-pubin",
                    "-inkey",
                    str(paths["public.pem"]),
                    *PKCS1_PADDING_ARGS,
                ),
                message,
            )
        _logger.debug(
            "RSA encryption complete message_size=%d ciphertext_size=%d",
            len(message),
            len(ciphertext),
        )
        return ciphertext

    def asymmetric_decrypt(self, private_key: PrivateKeyHandle, ciphertext: bytes) -> bytes:
        with _scratch_files(**{"private.pem": private_key.pem}) as paths:
            message = self._run(
                (
                    "pkeyutl",
                    "-decrypt",
                    "-inkey",
                    str(paths["private.pem"]),
                    *PKCS1_PADDING_ARGS,
                ),
                ciphertext,
                failure=DecryptionError,
            )
        _logger.debug(
            "RSA decryption complete ciphertext_size=%d message_size=%d",
            len(ciphertext),
            len(message),
        )
        return message

    def symmetric_encrypt(self, password: bytes, plaintext: bytes) -> bytes:
        _validate_password(password)
        with _scratch_files(**{"password": password}) as paths:
            ciphertext = self._run(
                ("enc", *SYMMETRIC_CIPHER_ARGS, "-pass", f"file:{paths['password']}"),
                plaintext,
            )
        _logger.debug(
            "AES-256-CBC encryption complete plaintext_size=%d ciphertext_size=%d",
            len(plaintext),
            len(ciphertext),
        )
        return ciphertext

    def symmetric_decrypt(self, password: bytes, ciphertext: bytes) -> bytes:
        try:
            _validate_password(password)
        except ValueError as exc:
            _logger.warning("Recovered password cannot be passed to openssl enc")
            raise DecryptionError(
                f"Symmetric decryption failed: {format_exception(exc)}"
            ) from exc
        with _scratch_files(**{"password": password}) as paths:
            plaintext = self._run(
                (
                    "enc",
                    "-d",
                    *SYMMETRIC_CIPHER_ARGS,
                    "-pass",
                    f"file:{paths['password']}",
                ),
                ciphertext,
                failure=DecryptionError,
            )
        _logger.debug(
            "AES-256-CBC decryption complete ciphertext_size=%d plaintext_size=%d",
            len(ciphertext),
            len(plaintext),
        )
        return plaintext

    def sign_digest(self, private_key: PrivateKeyHandle, data: bytes) -> bytes:
        """Sign the SHA-256 digest of ``data`` with RSASSA-PKCS1-v1_5."""
        with _scratch_files(**{"private.pem": private_key.pem}) as paths:
            signature = self._run(
                ("dgst", f"-{SIGNATURE_DIGEST}", "-sign", str(paths["private.pem"])),
                data,
            )
        _logger.info(
            "Signed digest algorithm=rsa_pkcs1v15_sha256 signature_size=%d",
            len(signature),
        )
        return signature

    def verify_digest(
        self, public_key: PublicKeyHandle, data: bytes, signature: bytes
    ) -> bool:
        with _scratch_files(
            **{"public.pem": public_key.pem, "signature.bin": signature}
        ) as paths:
            args = (
                "dgst",
                f"-{SIGNATURE_DIGEST}",
                "-verify",
                str(paths["public.pem"]),
                "-signature",
                str(paths["signature.bin"]),
            )
            proc = self._execute(args, data)
        if proc.returncode == 0:
            _logger.info("Verified digest algorithm=rsa_pkcs1v15_sha256")
            return True
        # 1.1.1 prints "Verification Failure", 3.x "Verification failure".
        if b"verification failure" in proc.stdout.lower():
            _logger.warning("Digest verification failed algorithm=rsa_pkcs1v15_sha256")
            raise SignatureError("Signature does not match the digest.")
        stderr = proc.stderr.decode("utf-8", errors="replace").strip()
        raise ExternalToolError(
            f"openssl dgst failed with exit status {proc.returncode}: {stderr}",
            command=(self._openssl_bin, *args),
            returncode=proc.returncode,
            stderr=stderr,
        )

    def public_key_fingerprint(self, public_key: PublicKeyHandle) -> str:
        der = self._run(
            ("pkey", "-pubin", "-pubout", "-outform", "DER"),
            public_key.pem,
            failure=ParseError,
        )
        return self._sha256_hex(der)

    def private_key_fingerprint(self, private_key: PrivateKeyHandle) -> str:
        der = self._run(
            ("pkey", "-pubout", "-outform", "DER"), private_key.pem, failure=ParseError
        )
        return self._sha256_hex(der)

    def _x509(self, certificate: bytes | str, *options: str) -> bytes:
        data = certificate.encode("utf-8") if isinstance(certificate, str) else certificate
        inform = "PEM" if b"-----BEGIN" in data else "DER"
        return self._run(
            ("x509", "-inform", inform, "-noout", *options),
            data,
            failure=CertificateParseError,
        )

    def cert_fingerprint(self, certificate: bytes | str) -> str:
        return self.public_key_fingerprint(
            load_public_key(self._x509(certificate, "-pubkey"))
        )

    def cert_serial(self, certificate: bytes | str) -> str:
        output = self._x509(certificate, "-serial").decode("ascii").strip()
        _label, _sep, serial = output.partition("=")
        return serial.strip().upper()
