# src/nft_bridge/utils/hash.py
"""Hashing helpers: keccak-256 commitments and a keyed BLAKE3 PRF."""

from __future__ import annotations

from typing import Final

from blake3 import blake3
from eth_utils import keccak

KEY_LENGTH_BYTES: Final[int] = 32
DIGEST_LENGTH_BYTES: Final[int] = 32


def keccak256(data: bytes) -> bytes:
    """Return the keccak-256 digest of the supplied data."""
    return bytes(keccak(data))


def keccak256_text(text: str) -> bytes:
    """Return the keccak-256 digest of a UTF-8 encoded string."""
    return keccak256(text.encode("utf-8"))


def prf(key: bytes, data: bytes) -> bytes:
    """Keyed pseudorandom function over ``data``.

    Uses BLAKE3 in keyed mode, which requires a 32-byte key and yields a
    32-byte output.
    """
    if len(key) != KEY_LENGTH_BYTES:
        raise ValueError(f"PRF keys must be {KEY_LENGTH_BYTES} bytes")
    return blake3(data, key=key).digest()


def to_hex32(value: bytes) -> str:
    """Convert a 32-byte value to a 0x-prefixed hex string."""
    if len(value) != DIGEST_LENGTH_BYTES:
        raise ValueError("expected 32-byte value")
    return "0x" + value.hex()


def from_hex(value: str) -> bytes:
    """Decode a hex string, accepting an optional 0x prefix."""
    cleaned = value.strip()
    if cleaned[:2] in ("0x", "0X"):
        cleaned = cleaned[2:]
    try:
        return bytes.fromhex(cleaned)
    except ValueError as err:
        raise ValueError(f"Invalid hex encoding: {err}") from err
