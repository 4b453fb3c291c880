"""Signature utilities built on secp256k1 recover-and-compare."""
from __future__ import annotations

import logging
from typing import Final

from eth_account import Account
from eth_account.messages import SignableMessage
from eth_utils import is_address, to_checksum_address

logger = logging.getLogger(__name__)

SECP256K1_N: Final[int] = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
SIGNATURE_LENGTH_BYTES: Final[int] = 65
_VALID_V: Final[dict[int, int]] = {0: 27, 1: 28, 27: 27, 28: 28}


def normalize_address(address: str) -> str:
    """Return the checksummed form of ``address``.

    Raises:
        ValueError: If ``address`` is not a 20-byte hex address.
    """
    if not isinstance(address, str) or not is_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    return to_checksum_address(address)


def canonical_signature(signature: bytes) -> bytes:
    """Validate a 65-byte ``r || s || v`` signature and return it with v in {27, 28}.

    High-s signatures are rejected. A recovery id of 0 or 1 is accepted and
    rewritten to 27 or 28, so the returned bytes are the single canonical
    encoding for a (message, signer) pair.

    Raises:
        ValueError: If the signature is malformed or malleable.
    """
    if len(signature) != SIGNATURE_LENGTH_BYTES:
        raise ValueError("Signatures must be 65 bytes")
    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:64], "big")
    v = signature[64]
    if not 0 < r < SECP256K1_N:
        raise ValueError("Signature r value out of range")
    if not 0 < s <= SECP256K1_N // 2:
        raise ValueError("Signature s value out of range (high-s signatures are rejected)")
    if v not in _VALID_V:
        raise ValueError(f"Invalid recovery id {v}")
    return signature[:64] + bytes([_VALID_V[v]])


def recover_signer(message: SignableMessage, signature: bytes) -> str:
    """Recover the checksummed address that produced ``signature`` over ``message``."""
    sig = canonical_signature(signature)
    return to_checksum_address(Account.recover_message(message, signature=sig))


def verify_signature(expected_signer: str, message: SignableMessage, signature: bytes) -> bool:
    """Verify that ``signature`` over ``message`` was produced by ``expected_signer``.

    Args:
        expected_signer: Address of the claimed signer.
        message: EIP-191 signable message (typed data or personal message).
        signature: 65-byte ``r || s || v`` signature.

    Returns:
        True if the recovered signer equals ``expected_signer``; False otherwise,
        including for any malformed input.
    """
    try:
        expected = normalize_address(expected_signer)
        recovered = recover_signer(message, signature)
    except Exception as err:
        logger.debug("Signature rejected: %s", err)
        return False
    return recovered == expected


def sign_message(private_key: str | bytes, message: SignableMessage) -> bytes:
    """Sign an EIP-191 signable message and return the raw 65-byte signature.

    Raises:
        ValueError: If the private key is invalid.
    """
    try:
        signed = Account.sign_message(message, private_key=private_key)
    except Exception as err:
        raise ValueError(f"Invalid private key: {err}") from err
    return bytes(signed.signature)


def address_for_key(private_key: str | bytes) -> str:
    """Return the checksummed address controlled by ``private_key``."""
    try:
        return to_checksum_address(Account.from_key(private_key).address)
    except Exception as err:
        raise ValueError(f"Invalid private key: {err}") from err
