# src/nft_bridge/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .system import router as system_router
from .validator import router as validator_router

__all__ = [
    "system_router",
    "validator_router",
]
