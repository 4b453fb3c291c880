"""Versioned encodings of every message the bridge signs or binds.

Signed messages use EIP-712 typed data so each field is encoded at a fixed
position and dynamic fields (``bytes``) are hashed before inclusion. The
request binding used as PRF input and AEAD associated data is a
length-prefixed byte string under its own domain tag.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final

from eth_account.messages import SignableMessage, encode_typed_data
from eth_utils import to_canonical_address

from nft_bridge.core.security import normalize_address
from nft_bridge.utils.hash import keccak256_text

DOMAIN_NAME: Final[str] = "NFTBridge"
DOMAIN_VERSION: Final[str] = "1"

REQUEST_BINDING_TAG: Final[bytes] = b"nft-bridge/request/v1"
CHALLENGE_TAG: Final[bytes] = b"nft-bridge/challenge/v1"

MAX_UINT256: Final[int] = 2**256 - 1
MAX_TOKEN_ID: Final[int] = MAX_UINT256
MAX_NONCE_BYTES: Final[int] = 256

_DOMAIN_TYPE: Final[list[dict[str, str]]] = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
]

_BRIDGE_FIELDS: Final[list[dict[str, str]]] = [
    {"name": "fromToken", "type": "address"},
    {"name": "fromBridge", "type": "address"},
    {"name": "toToken", "type": "address"},
    {"name": "toBridge", "type": "address"},
]

REQUEST_TOKEN_BURN_TYPE: Final[list[dict[str, str]]] = [
    *_BRIDGE_FIELDS,
    {"name": "tokenOwner", "type": "address"},
    {"name": "tokenId", "type": "uint256"},
]

COMMIT_TYPE: Final[list[dict[str, str]]] = [
    *_BRIDGE_FIELDS,
    {"name": "tokenOwner", "type": "address"},
    {"name": "tokenId", "type": "uint256"},
    {"name": "tokenUriHash", "type": "bytes32"},
    {"name": "commitment", "type": "bytes32"},
    {"name": "requestTimestamp", "type": "uint256"},
]

BURN_CHALLENGE_TYPE: Final[list[dict[str, str]]] = [
    {"name": "tokenId", "type": "uint256"},
    {"name": "requestNonce", "type": "bytes"},
    {"name": "timestamp", "type": "uint256"},
    {"name": "challenge", "type": "bytes32"},
]


@dataclass(frozen=True)
class BridgeConfig:
    """Deployment quadruple plus the validator identity.

    ``from_bridge`` is always the address of the bridge contract itself.
    """

    from_token: str
    from_bridge: str
    to_token: str
    to_bridge: str
    validator: str

    @classmethod
    def create(
        cls,
        *,
        from_token: str,
        from_bridge: str,
        to_token: str,
        to_bridge: str,
        validator: str,
    ) -> BridgeConfig:
        """Build a config with every address validated and checksummed."""
        return cls(
            from_token=normalize_address(from_token),
            from_bridge=normalize_address(from_bridge),
            to_token=normalize_address(to_token),
            to_bridge=normalize_address(to_bridge),
            validator=normalize_address(validator),
        )

    def _quadruple(self) -> dict[str, str]:
        return {
            "fromToken": self.from_token,
            "fromBridge": self.from_bridge,
            "toToken": self.to_token,
            "toBridge": self.to_bridge,
        }


def _check_uint256(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    if not 0 <= value <= MAX_UINT256:
        raise ValueError(f"{name} out of uint256 range")
    return value


def _check_token_id(token_id: int) -> int:
    return _check_uint256("tokenId", token_id)


def _check_nonce(request_nonce: bytes) -> bytes:
    if not isinstance(request_nonce, (bytes, bytearray)):
        raise ValueError("requestNonce must be bytes")
    if not 0 < len(request_nonce) <= MAX_NONCE_BYTES:
        raise ValueError(f"requestNonce must be 1..{MAX_NONCE_BYTES} bytes")
    return bytes(request_nonce)


def _check_bytes32(name: str, value: bytes) -> bytes:
    if not isinstance(value, (bytes, bytearray)) or len(value) != 32:
        raise ValueError(f"{name} must be 32 bytes")
    return bytes(value)


def _typed_message(primary_type: str, fields: list[dict[str, str]], message: dict[str, Any]) -> SignableMessage:
    return encode_typed_data(
        full_message={
            "types": {
                "EIP712Domain": _DOMAIN_TYPE,
                primary_type: fields,
            },
            "primaryType": primary_type,
            "domain": {"name": DOMAIN_NAME, "version": DOMAIN_VERSION},
            "message": message,
        }
    )


def request_token_burn_message(config: BridgeConfig, token_owner: str, token_id: int) -> SignableMessage:
    """Message the token owner signs to request a burn on this deployment."""
    return _typed_message(
        "RequestTokenBurn",
        REQUEST_TOKEN_BURN_TYPE,
        {
            **config._quadruple(),
            "tokenOwner": normalize_address(token_owner),
            "tokenId": _check_token_id(token_id),
        },
    )


def commit_message(
    config: BridgeConfig,
    token_owner: str,
    token_id: int,
    token_uri: str,
    commitment: bytes,
    request_timestamp: int,
) -> SignableMessage:
    """Message the validator signs to finalize a commitment.

    The token URI has unbounded size, so only its keccak-256 hash is signed.
    """
    return _typed_message(
        "Commit",
        COMMIT_TYPE,
        {
            **config._quadruple(),
            "tokenOwner": normalize_address(token_owner),
            "tokenId": _check_token_id(token_id),
            "tokenUriHash": keccak256_text(token_uri),
            "commitment": _check_bytes32("commitment", commitment),
            "requestTimestamp": _check_uint256("requestTimestamp", request_timestamp),
        },
    )


def burn_challenge_message(
    token_id: int,
    request_nonce: bytes,
    timestamp: int,
    challenge: bytes,
) -> SignableMessage:
    """Message the owner signs to answer a validator challenge."""
    return _typed_message(
        "BurnChallenge",
        BURN_CHALLENGE_TYPE,
        {
            "tokenId": _check_token_id(token_id),
            "requestNonce": _check_nonce(request_nonce),
            "timestamp": _check_uint256("timestamp", timestamp),
            "challenge": _check_bytes32("challenge", challenge),
        },
    )


def request_binding(owner: str, token_id: int, request_nonce: bytes) -> bytes:
    """Encode ``(owner, tokenId, requestNonce)`` without ambiguous field boundaries."""
    nonce = _check_nonce(request_nonce)
    return b"".join(
        (
            REQUEST_BINDING_TAG,
            to_canonical_address(normalize_address(owner)),
            _check_token_id(token_id).to_bytes(32, "big"),
            len(nonce).to_bytes(4, "big"),
            nonce,
        )
    )


def challenge_input(timestamp: int) -> bytes:
    """Encode a challenge timestamp as PRF input."""
    if timestamp < 0:
        raise ValueError("timestamp must be non-negative")
    return CHALLENGE_TAG + int(timestamp).to_bytes(8, "big")
