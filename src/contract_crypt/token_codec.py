from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

from .exceptions import EncodingError, TokenFormatError

TOKEN_PREFIX = "hyper-protect-basic"
TOKEN_DELIMITER = "."


@dataclass(frozen=True)
class SplitToken:
    """The three segments of a token, still base64 encoded."""

    prefix: str
    password: str
    payload: str

    def decode_password(self) -> bytes:
        return decode_segment(self.password, "password")

    def decode_payload(self) -> bytes:
        return decode_segment(self.payload, "payload")


def encode_segment(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_segment(segment: str, name: str = "segment") -> bytes:
    try:
        return base64.b64decode(segment.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise EncodingError(f"Invalid base64 in token {name} segment.") from exc


def join_token(encrypted_password: bytes, encrypted_payload: bytes) -> str:
    return TOKEN_DELIMITER.join(
        (
            TOKEN_PREFIX,
            encode_segment(encrypted_password),
            encode_segment(encrypted_payload),
        )
    )


def split_token(token: str) -> SplitToken:
    """
    Split a token into prefix, encrypted password and encrypted payload.

    The token must carry exactly three non-empty segments and the
    ``hyper-protect-basic`` prefix; anything else raises TokenFormatError.
    Segments are not base64 decoded here.
    """
    if not isinstance(token, str):
        raise TokenFormatError(f"Token must be a string, got {type(token).__name__}.")
    segments = token.split(TOKEN_DELIMITER)
    if len(segments) != 3:
        raise TokenFormatError(
            f"Token must have exactly 3 segments, found {len(segments)}."
        )
    prefix, password, payload = segments
    if prefix != TOKEN_PREFIX:
        raise TokenFormatError(
            f"Token prefix must be '{TOKEN_PREFIX}', found '{prefix}'."
        )
    if not password or not payload:
        raise TokenFormatError("Token segments must not be empty.")
    return SplitToken(prefix=prefix, password=password, payload=payload)
