class ContractCryptError(RuntimeError):
    """Base library error."""


class ConfigurationError(ContractCryptError):
    """Configuration is invalid or incomplete."""


class ParseError(ContractCryptError):
    """Key or certificate input could not be parsed."""


class CertificateParseError(ParseError):
    """Certificate input could not be parsed."""


class UnsupportedKeyTypeError(ParseError):
    """The key is well formed but is not an RSA key."""


class TokenFormatError(ContractCryptError):
    """Token structure is malformed."""


class EncodingError(ContractCryptError):
    """A token segment is not valid base64."""


class MessageTooLargeError(ContractCryptError):
    """Message exceeds the capacity of the RSA modulus."""


class DecryptionError(ContractCryptError):
    """Symmetric or asymmetric decryption failed."""


class SignatureError(ContractCryptError):
    """Signature verification failed."""


class ExternalToolError(ContractCryptError):
    """The external cryptographic tool could not be run or exited with an error."""

    def __init__(
        self,
        message: str,
        *,
        command: tuple[str, ...] = (),
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


def format_exception(exc: BaseException) -> str:
    details = str(exc).strip()
    if not details and getattr(exc, "args", None):
        details = ", ".join(str(a) for a in exc.args if a)
    if details:
        return f"{type(exc).__name__}: {details}"
    return type(exc).__name__
