from __future__ import annotations

import argparse
import base64
import binascii
import dataclasses
import json
import sys
from pathlib import Path

if __package__ in (None, ""):
    repo_src = Path(__file__).resolve().parents[1] / "src"
    if str(repo_src) not in sys.path:
        sys.path.insert(0, str(repo_src))

from contract_crypt import (
    ContractCryptError,
    EncryptionConfig,
    EncryptionEnvironment,
    configure_logging,
    default_encryption,
    load_private_key,
    load_public_key,
)


class _HelpFormatter(
    argparse.RawTextHelpFormatter,
    argparse.ArgumentDefaultsHelpFormatter,
):
    """Readable help with examples and defaults."""


CLI_HELP_EPILOG = """Examples:
  python3 examples/contract_cli.py keygen --bits 4096 --out contract.key
  python3 examples/contract_cli.py pubkey --private-key-file contract.key --out contract.pub
  python3 examples/contract_cli.py encrypt --public-key-file se-encrypt-basic.crt --file contract.yaml --out contract.token
  python3 examples/contract_cli.py decrypt --private-key-file contract.key --token-file contract.token
  python3 examples/contract_cli.py fingerprint --cert-file se-encrypt-basic.crt
  python3 examples/contract_cli.py --backend openssl sign --private-key-file contract.key --message "payload"

Backend selection:
  --backend overrides CONTRACT_CRYPT_BACKEND. With "auto", OPENSSL_BIN selects
  the openssl binary when it is usable and the native backend otherwise.
"""


def _write_text_output(payload: str, out_path: str | None, label: str) -> None:
    if out_path is None:
        print(payload)
        return
    target = Path(out_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(payload, encoding="utf-8")
    print(f"Wrote {label} to: {target}")


def _write_json_output(payload: dict[str, object]) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def _read_binary_file(path: str) -> bytes:
    source = Path(path)
    if not source.exists():
        raise ValueError(f"File does not exist: {source}")
    if not source.is_file():
        raise ValueError(f"Path is not a file: {source}")
    return source.read_bytes()


def _resolve_payload(args: argparse.Namespace) -> bytes:
    if (args.message is None) == (args.file_path is None):
        raise ValueError("Provide exactly one of --message or --file.")
    if args.message is not None:
        return args.message.encode("utf-8")
    return _read_binary_file(args.file_path)


def _add_payload_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--message", default=None, help="Inline UTF-8 payload.")
    parser.add_argument(
        "--file", dest="file_path", default=None, help="Read the payload from a file."
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Seal contract payloads into hyper-protect-basic tokens and inspect "
            "the RSA keys and certificates used for them."
        ),
        formatter_class=_HelpFormatter,
        epilog=CLI_HELP_EPILOG,
    )
    parser.add_argument(
        "--backend",
        choices=("auto", "native", "openssl"),
        default=None,
        help="Cryptographic backend (default: CONTRACT_CRYPT_BACKEND or auto).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    keygen = subparsers.add_parser("keygen", help="Generate an RSA private key.")
    keygen.add_argument("--bits", type=int, default=None, help="RSA key size.")
    keygen.add_argument("--out", default=None, help="Write the PEM key to this path.")

    pubkey = subparsers.add_parser("pubkey", help="Export the public key of a private key.")
    pubkey.add_argument("--private-key-file", required=True)
    pubkey.add_argument("--out", default=None)

    encrypt = subparsers.add_parser("encrypt", help="Encrypt a payload into a token.")
    encrypt.add_argument(
        "--public-key-file",
        required=True,
        help="PEM public key or X.509 certificate of the recipient.",
    )
    _add_payload_args(encrypt)
    encrypt.add_argument("--out", default=None, help="Write the token to this path.")

    decrypt = subparsers.add_parser("decrypt", help="Decrypt a token.")
    decrypt.add_argument("--private-key-file", required=True)
    decrypt.add_argument("--token", default=None, help="Inline token.")
    decrypt.add_argument("--token-file", default=None, help="Read the token from a file.")
    decrypt.add_argument(
        "--out",
        default=None,
        help="Write the plaintext to this path (required for binary payloads).",
    )

    fingerprint = subparsers.add_parser(
        "fingerprint", help="SHA-256 fingerprint of a key or certificate public key."
    )
    source = fingerprint.add_mutually_exclusive_group(required=True)
    source.add_argument("--public-key-file", default=None)
    source.add_argument("--private-key-file", default=None)
    source.add_argument("--cert-file", default=None)

    serial = subparsers.add_parser("serial", help="Serial number of a certificate.")
    serial.add_argument("--cert-file", required=True)

    sign = subparsers.add_parser("sign", help="Sign the SHA-256 digest of a payload.")
    sign.add_argument("--private-key-file", required=True)
    _add_payload_args(sign)

    verify = subparsers.add_parser("verify", help="Verify a signature over a payload.")
    verify.add_argument("--public-key-file", required=True)
    _add_payload_args(verify)
    verify.add_argument("--signature", required=True, help="Base64 signature.")

    return parser


def _run_decrypt(args: argparse.Namespace, env: EncryptionEnvironment) -> None:
    if (args.token is None) == (args.token_file is None):
        raise ValueError("Provide exactly one of --token or --token-file.")
    if args.token is not None:
        token = args.token
    else:
        token = _read_binary_file(args.token_file).decode("ascii").strip()

    private_key = load_private_key(_read_binary_file(args.private_key_file))
    plaintext = env.decrypt_basic(private_key)(token)
    if args.out is not None:
        target = Path(args.out)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(plaintext)
        print(f"Wrote plaintext to: {target}")
        return
    try:
        print(plaintext.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise ValueError("Plaintext is binary; use --out to write it to a file.") from exc


def _run_fingerprint(args: argparse.Namespace, env: EncryptionEnvironment) -> None:
    if args.cert_file is not None:
        source = "certificate"
        fingerprint = env.cert_fingerprint(_read_binary_file(args.cert_file))
    elif args.private_key_file is not None:
        source = "private_key"
        fingerprint = env.private_key_fingerprint(
            load_private_key(_read_binary_file(args.private_key_file))
        )
    else:
        source = "public_key"
        fingerprint = env.public_key_fingerprint(
            load_public_key(_read_binary_file(args.public_key_file))
        )
    _write_json_output(
        {
            "operation": "fingerprint",
            "backend": env.name,
            "source": source,
            "fingerprint": fingerprint,
        }
    )


def _run_verify(args: argparse.Namespace, env: EncryptionEnvironment) -> int:
    try:
        signature = base64.b64decode(args.signature.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValueError("Invalid base64 for --signature.") from exc
    public_key = load_public_key(_read_binary_file(args.public_key_file))
    verified = env.verify_digest(public_key, _resolve_payload(args), signature)
    _write_json_output({"operation": "verify", "backend": env.name, "verified": verified})
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        configure_logging()
        config = EncryptionConfig.from_env()
        if args.backend is not None:
            config = dataclasses.replace(config, backend=args.backend)
        if args.command == "keygen" and args.bits is not None:
            config = dataclasses.replace(config, rsa_key_bits=args.bits)
        env = default_encryption(config)

        if args.command == "keygen":
            _write_text_output(env.private_key().pem.decode("ascii"), args.out, "private key")
            return 0

        if args.command == "pubkey":
            private_key = load_private_key(_read_binary_file(args.private_key_file))
            _write_text_output(
                env.public_key(private_key).pem.decode("ascii"), args.out, "public key"
            )
            return 0

        if args.command == "encrypt":
            public_key = load_public_key(_read_binary_file(args.public_key_file))
            token = env.encrypt_basic(public_key)(_resolve_payload(args))
            _write_text_output(token, args.out, "token")
            return 0

        if args.command == "decrypt":
            _run_decrypt(args, env)
            return 0

        if args.command == "fingerprint":
            _run_fingerprint(args, env)
            return 0

        if args.command == "serial":
            _write_json_output(
                {
                    "operation": "serial",
                    "backend": env.name,
                    "serial": env.cert_serial(_read_binary_file(args.cert_file)),
                }
            )
            return 0

        if args.command == "sign":
            private_key = load_private_key(_read_binary_file(args.private_key_file))
            signature = env.sign_digest(private_key, _resolve_payload(args))
            _write_json_output(
                {
                    "operation": "sign",
                    "backend": env.name,
                    "algorithm": "rsa_pkcs1v15_sha256",
                    "signature_b64": base64.b64encode(signature).decode("ascii"),
                }
            )
            return 0

        if args.command == "verify":
            return _run_verify(args, env)

        raise ValueError(f"Unsupported command: {args.command}")
    except (ContractCryptError, ValueError) as exc:
        print(f"contract CLI error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
