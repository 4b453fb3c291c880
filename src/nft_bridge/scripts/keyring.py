"""Operator utility for the shared commit key-ring store.

Run with ``python -m nft_bridge.scripts.keyring <command>``. Rotation must be
performed by a single operator and observed by every replica before it is
relied on; replicas pick it up on their next request.
"""
from __future__ import annotations

import argparse
import secrets
import sys

from sqlalchemy.orm import Session

from nft_bridge.core.exceptions import BridgeError
from nft_bridge.core.settings import settings
from nft_bridge.db.session import SessionLocal, create_tables
from nft_bridge.services.keyring import KeyRingStore
from nft_bridge.utils.hash import KEY_LENGTH_BYTES, from_hex


def _key_or_random(value: str | None) -> bytes:
    if value is None:
        return secrets.token_bytes(KEY_LENGTH_BYTES)
    return from_hex(value)


def setup_keyring(db: Session, args: argparse.Namespace) -> None:
    store = KeyRingStore(db)
    lifetime = args.challenge_lifetime
    if lifetime is None:
        lifetime = settings.challenge_lifetime_seconds
    store.setup(
        _key_or_random(args.commit_key),
        _key_or_random(args.index_key),
        _key_or_random(args.challenge_key),
        lifetime,
    )
    print(f"Key ring set up at generation 0 (challenge lifetime {lifetime}s)")


def rotate_keyring(db: Session, args: argparse.Namespace) -> None:
    generation = KeyRingStore(db).rotate(_key_or_random(args.commit_key))
    print(f"Rotated commit key ring to generation {generation}")


def show_status(db: Session, args: argparse.Namespace) -> None:
    store = KeyRingStore(db)
    if not store.is_setup():
        print("Key ring: not set up")
        return
    snapshot = store.load()
    print(f"Key ring: generation {snapshot.current_generation}")
    print(f"Challenge lifetime: {snapshot.challenge_lifetime}s")


def print_operator_token(db: Session, args: argparse.Namespace) -> None:
    from nft_bridge.api.v1.dependencies import create_operator_token

    print(create_operator_token(args.subject))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage the validator commit key ring.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create key-ring tables")

    setup = sub.add_parser("setup", help="One-time key-ring initialization")
    setup.add_argument("--commit-key", help="Hex 32-byte initial commit key (random if omitted)")
    setup.add_argument("--index-key", help="Hex 32-byte index encryption key (random if omitted)")
    setup.add_argument("--challenge-key", help="Hex 32-byte challenge key (random if omitted)")
    setup.add_argument("--challenge-lifetime", type=int, help="Challenge lifetime in seconds")

    rotate = sub.add_parser("rotate", help="Append a new commit key generation")
    rotate.add_argument("--commit-key", help="Hex 32-byte commit key (random if omitted)")

    sub.add_parser("status", help="Show the current generation")

    token = sub.add_parser("operator-token", help="Print an operator JWT for the rotate endpoint")
    token.add_argument("--subject", default="operator", help="Operator name recorded in the token")
    return parser


_COMMANDS = {
    "setup": setup_keyring,
    "rotate": rotate_keyring,
    "status": show_status,
    "operator-token": print_operator_token,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "init-db":
        create_tables()
        print("Key-ring tables created.")
        return 0

    db = SessionLocal()
    try:
        _COMMANDS[args.command](db, args)
    except (BridgeError, ValueError) as err:
        print(f"Error: {err}", file=sys.stderr)
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
