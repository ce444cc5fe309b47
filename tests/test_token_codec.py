from __future__ import annotations

import pytest

from contract_crypt import (
    TOKEN_PREFIX,
    EncodingError,
    TokenFormatError,
    join_token,
    split_token,
)

# Token captured from a production encryption run.
PRODUCTION_TOKEN = (
    "hyper-protect-basic.UMs93kGaZrzYa6oeoYk8CyaCnsTtRPVdyT+zWBRKKaQD9H71G8bN3PQzbWVx/N84Oey"
    "orvERI9RVnpuWwlvnhXj5mu7KZdMXrPoLzW13/zB9HaKYLh64yV3fBsZbGkhlyyjW5n/dcoJ7zbAF5ZRe4m2un"
    "psDUne2cLs27s1FD08oj7iWw/BrzNqqcyOayQnH1WUtHN2OhR4T3k+qSdj3XtnD6t+dsrxg9XFue0zciNQqxDf"
    "ayBPiUWGpmtOKF2sc+Dp4cq9bV8SsF1crs3dXBsWc21Zl7nVcwt3bmQET++rBdgwI9TZDMa7gjB9Iu/JbjgbPH"
    "uBdIycWJMfIH4mseAH6r+HFg5Wq2t/s3FrWg5qdkwCWjzT3r5OoMOafiG06U0SFp29mND1t0kVypf3nEQJQjb6"
    "+WoIGcDvKzvUMz5NcRFi8zubziXg0wAJoSZWFL+/gXiDyg9ZbfR8/Ukx52CVLTYGW/IATChfIw51c57b2EddKT3"
    "aS/ZksZpyLfLdiLRxLn6X/lEmVGCUojAhmgiFQZzEjeREAV9HMNRnymiyq+qtK+zSMsfZMMdhesHalaRqK9ORqU"
    "gBaYII+AG7sWC1xS0FD5LNtN739SjY18/NAY0OznQWI8Yvfu0BoMRSVNIrZl4QWYHdmNHywSfkktc/Bk6qlkgTy"
    "392RbfgbcPw=.U2FsdGVkX1/DbyZBRupGSoukxfU91ywFu5HTUsqs8+LLU+MkGP3PJY1XxwaioHoq"
)


def test_split_production_token() -> None:
    parts = split_token(PRODUCTION_TOKEN)

    assert parts.prefix == TOKEN_PREFIX
    assert len(parts.decode_password()) == 512
    payload = parts.decode_payload()
    assert payload.startswith(b"Salted__")
    assert len(payload) == 48


def test_join_then_split() -> None:
    token = join_token(b"\xfb\xff\xfe wrapped", b"Salted__payload")

    parts = split_token(token)

    assert token.count(".") == 2
    assert parts.decode_password() == b"\xfb\xff\xfe wrapped"
    assert parts.decode_payload() == b"Salted__payload"


@pytest.mark.parametrize(
    "token",
    [
        "",
        ".",
        "..",
        "hyper-protect-basic",
        "hyper-protect-basic.YQ==",
        "hyper-protect-basic.YQ==.Yg==.Yw==",
        "hyper-protect-basic.YQ==.Yg==.",
        "hyper-protect-basic-v2.YQ==.Yg==",
        "HYPER-PROTECT-BASIC.YQ==.Yg==",
        " hyper-protect-basic.YQ==.Yg==",
        "hyper-protect-basic..Yg==",
        "hyper-protect-basic.YQ==.",
    ],
)
def test_split_rejects_malformed_tokens(token: str) -> None:
    with pytest.raises(TokenFormatError):
        split_token(token)


def test_split_rejects_non_string() -> None:
    with pytest.raises(TokenFormatError):
        split_token(b"hyper-protect-basic.YQ==.Yg==")  # type: ignore[arg-type]


@pytest.mark.parametrize("payload", ["Yg=", "Y!==", "Yg==\n", "Ÿg=="])
def test_decode_rejects_invalid_base64(payload: str) -> None:
    parts = split_token(f"hyper-protect-basic.YQ==.{payload}")

    with pytest.raises(EncodingError):
        parts.decode_payload()
