# src/nft_bridge/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .validator import (
    ChallengeResponse,
    CommitRequest,
    CommitResponse,
    RevealRequest,
    RevealResponse,
    RotateRequest,
    RotateResponse,
)

__all__ = [
    "ChallengeResponse",
    "CommitRequest", "CommitResponse",
    "RevealRequest", "RevealResponse",
    "RotateRequest", "RotateResponse",
]
