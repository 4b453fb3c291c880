"""System and transparency endpoints for the validator API."""

from __future__ import annotations

from fastapi import APIRouter

from nft_bridge.api.v1.dependencies import KeyRingStoreDep
from nft_bridge.core.exceptions import ConfigurationError, SetupError
from nft_bridge.core.settings import settings
from nft_bridge.services.validator import load_bridge_config

router = APIRouter(prefix="/system", tags=["system", "transparency"])


@router.get("/config")
async def get_public_config(store: KeyRingStoreDep) -> dict[str, object]:
    """Return a sanitized snapshot of public runtime configuration.

    Excludes key material and connection strings; suitable for wallet UIs.
    """
    try:
        config = load_bridge_config()
    except ConfigurationError:
        bridge: dict[str, object] = {**settings.bridge_addresses, "validator": None}
    else:
        bridge = {
            "from_token": config.from_token,
            "from_bridge": config.from_bridge,
            "to_token": config.to_token,
            "to_bridge": config.to_bridge,
            "validator": config.validator,
        }

    try:
        keyring = store.load()
    except SetupError:
        key_ring: dict[str, object] = {"setup": False}
    else:
        key_ring = {
            "setup": True,
            "current_generation": keyring.current_generation,
            "challenge_lifetime_seconds": keyring.challenge_lifetime,
        }

    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
            "debug": settings.debug,
        },
        "bridge": bridge,
        "key_ring": key_ring,
    }
