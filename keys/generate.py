"""
Development JWT keys for the group task service.

The service only verifies tokens, so local runs need a key pair and a way
to mint tokens the way the identity provider would:

    python keys/generate.py                       # write dev.private.pem / dev.public.pem
    python keys/generate.py --force               # replace existing keys
    python keys/generate.py token 1001 alice      # print a bearer token for user 1001
"""

from __future__ import annotations

import argparse
from datetime import datetime, timedelta, timezone
from pathlib import Path

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa


KEYS_DIR = Path(__file__).resolve().parent
PRIVATE_KEY_PATH = KEYS_DIR / "dev.private.pem"
PUBLIC_KEY_PATH = KEYS_DIR / "dev.public.pem"


def write_key_pair(force: bool = False) -> int:
    """Write the RS256 key pair used by the development config."""
    private_exists = PRIVATE_KEY_PATH.exists()
    public_exists = PUBLIC_KEY_PATH.exists()

    if private_exists and public_exists and not force:
        print(f"Keys already exist, skipping: {PRIVATE_KEY_PATH} / {PUBLIC_KEY_PATH}")
        return 0

    if private_exists != public_exists and not force:
        raise SystemExit(
            "Only one key file exists. Run again with --force to replace both."
        )

    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    PRIVATE_KEY_PATH.write_bytes(private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ))
    PUBLIC_KEY_PATH.write_bytes(private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ))
    print(f"Generated: {PRIVATE_KEY_PATH}")
    print(f"Generated: {PUBLIC_KEY_PATH}")
    return 0


def mint_token(user_id: int, username: str, hours: int = 24) -> str:
    """Sign a token carrying the claims ``app.auth`` requires."""
    if not PRIVATE_KEY_PATH.exists():
        raise SystemExit(f"No private key at {PRIVATE_KEY_PATH}; generate keys first.")
    now = datetime.now(timezone.utc)
    payload = {
        "user_id": user_id,
        "username": username,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(hours=hours)).timestamp()),
    }
    return jwt.encode(payload, PRIVATE_KEY_PATH.read_text(encoding="utf-8"), algorithm="RS256")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--force", action="store_true", help="replace existing key files")
    subcommands = parser.add_subparsers(dest="command")
    token = subcommands.add_parser("token", help="print a development bearer token")
    token.add_argument("user_id", type=int)
    token.add_argument("username")
    token.add_argument("--hours", type=int, default=24)
    args = parser.parse_args(argv)

    if args.command == "token":
        print(mint_token(args.user_id, args.username, args.hours))
        return 0
    return write_key_pair(force=args.force)


if __name__ == "__main__":
    raise SystemExit(main())
