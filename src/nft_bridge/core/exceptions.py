"""Exception hierarchy shared by the validator service and the bridge contract.

Every check in the cryptographic core is local and terminal: the first failed
check raises one of these errors and the operation produces no output and no
state change.
"""

from __future__ import annotations


class BridgeError(RuntimeError):
    """Base exception raised for bridge and validator failures."""


class ConfigurationError(BridgeError):
    """Raised when an operation needs configuration that is missing or invalid."""


class SetupError(BridgeError):
    """Raised when the key ring is set up twice or used before setup."""


class ConcurrentRotationError(BridgeError):
    """Raised when another writer appended the same key generation first."""


class AuthorizationError(BridgeError):
    """Wrong caller for a restricted operation (validator-only, owner-only)."""


class SignatureError(BridgeError):
    """Recovered signer does not match the expected identity."""


class FreshnessError(BridgeError):
    """Challenge timestamp is outside its validity window."""


class OwnershipMismatchError(BridgeError):
    """Claimed owner no longer holds the token."""


class TokenNotFoundError(OwnershipMismatchError):
    """The token does not exist (never minted or already burned)."""


class DecryptionError(BridgeError):
    """Key indicator failed authentication during reveal."""


class IndexOutOfRangeError(BridgeError):
    """Decrypted generation index exceeds the current key ring."""


__all__ = [
    "AuthorizationError",
    "BridgeError",
    "ConcurrentRotationError",
    "ConfigurationError",
    "DecryptionError",
    "FreshnessError",
    "IndexOutOfRangeError",
    "OwnershipMismatchError",
    "SetupError",
    "SignatureError",
    "TokenNotFoundError",
]
