# src/nft_bridge/models/__init__.py
"""SQLAlchemy models for the validator key-ring store."""

from .commit_key import CommitKey
from .validator_secrets import ValidatorSecrets

__all__ = [
    "CommitKey",
    "ValidatorSecrets",
]
