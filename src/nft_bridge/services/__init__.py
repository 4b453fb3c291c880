# src/nft_bridge/services/__init__.py
"""Business logic services for the NFT bridge validator."""

from .challenge import ChallengeService
from .keyring import KeyRingSnapshot, KeyRingStore
from .validator import ValidatorSecretService, ValidatorSigner

__all__ = [
    "ChallengeService",
    "KeyRingSnapshot",
    "KeyRingStore",
    "ValidatorSecretService",
    "ValidatorSigner",
]
