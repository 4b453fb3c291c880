"""Validator secret service: COMMIT, REVEAL and commitment co-signing.

Every operation here is a pure function of a key-ring snapshot, its inputs and
the current time. Replicas sharing the same key-ring store can serve any
request without talking to each other.
"""

from __future__ import annotations

import logging
import secrets
import struct
from dataclasses import dataclass
from typing import Final

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from nft_bridge.core.exceptions import ConfigurationError, DecryptionError, SignatureError
from nft_bridge.core.security import address_for_key, sign_message, verify_signature
from nft_bridge.core.settings import settings
from nft_bridge.services.challenge import ChallengeService, Clock, IssuedChallenge
from nft_bridge.services.keyring import KeyRingSnapshot
from nft_bridge.services.messages import (
    BridgeConfig,
    commit_message,
    request_binding,
    request_token_burn_message,
)
from nft_bridge.utils.hash import keccak256, prf

logger = logging.getLogger(__name__)

INDICATOR_NONCE_BYTES: Final[int] = 12
INDICATOR_TAG_BYTES: Final[int] = 16
_INDEX_FORMAT: Final[str] = ">I"
INDICATOR_LENGTH_BYTES: Final[int] = (
    INDICATOR_NONCE_BYTES + struct.calcsize(_INDEX_FORMAT) + INDICATOR_TAG_BYTES
)


def encrypt_index(index_encryption_key: bytes, generation: int, associated_data: bytes) -> bytes:
    """Seal a key generation index into a key indicator (AES-256-GCM)."""
    nonce = secrets.token_bytes(INDICATOR_NONCE_BYTES)
    sealed = AESGCM(index_encryption_key).encrypt(
        nonce,
        struct.pack(_INDEX_FORMAT, generation),
        associated_data,
    )
    return nonce + sealed


def decrypt_index(index_encryption_key: bytes, key_indicator: bytes, associated_data: bytes) -> int:
    """Open a key indicator and return the generation index it records.

    Raises:
        DecryptionError: If the indicator is malformed, was tampered with, was
            produced for different associated data or under a different key.
    """
    if len(key_indicator) != INDICATOR_LENGTH_BYTES:
        raise DecryptionError("Key indicator has an invalid length")
    nonce = key_indicator[:INDICATOR_NONCE_BYTES]
    try:
        plaintext = AESGCM(index_encryption_key).decrypt(
            nonce,
            key_indicator[INDICATOR_NONCE_BYTES:],
            associated_data,
        )
    except InvalidTag as err:
        raise DecryptionError("Key indicator failed authentication") from err
    (generation,) = struct.unpack(_INDEX_FORMAT, plaintext)
    return generation


def commitment_for(secret: bytes) -> bytes:
    """Return the public one-way commitment to ``secret``."""
    return keccak256(secret)


@dataclass(frozen=True)
class CommitResult:
    """Public output of COMMIT."""

    commitment: bytes
    key_indicator: bytes
    generation: int


class ValidatorSecretService:
    """Stateless cryptographic core run by every validator replica."""

    def __init__(self, keyring: KeyRingSnapshot, clock: Clock | None = None) -> None:
        self._keyring = keyring
        self.challenges = ChallengeService(
            keyring.challenge_gen_key,
            keyring.challenge_lifetime,
            clock,
        )

    @property
    def current_generation(self) -> int:
        return self._keyring.current_generation

    def issue_challenge(self) -> IssuedChallenge:
        return self.challenges.issue()

    def derive_secret(self, generation: int, owner: str, token_id: int, request_nonce: bytes) -> bytes:
        """Return ``PRF(commitKey[generation], owner || tokenId || requestNonce)``."""
        return prf(
            self._keyring.commit_key(generation),
            request_binding(owner, token_id, request_nonce),
        )

    def commit(
        self,
        owner: str,
        token_id: int,
        request_nonce: bytes,
        timestamp: int,
        signature: bytes,
    ) -> CommitResult:
        """COMMIT: authenticate the owner, then derive a commitment and key indicator.

        The commitment is deterministic for a given request and generation; the
        key indicator is freshly sealed on every call.

        Raises:
            FreshnessError: If the challenge timestamp is stale or in the future.
            SignatureError: If the challenge response does not verify.
        """
        self.challenges.verify(owner, token_id, request_nonce, timestamp, signature)

        generation = self._keyring.current_generation
        secret = self.derive_secret(generation, owner, token_id, request_nonce)
        key_indicator = encrypt_index(
            self._keyring.index_encryption_key,
            generation,
            request_binding(owner, token_id, request_nonce),
        )
        logger.info("Committed token %d at key generation %d", token_id, generation)
        return CommitResult(
            commitment=commitment_for(secret),
            key_indicator=key_indicator,
            generation=generation,
        )

    def reveal(self, owner: str, token_id: int, request_nonce: bytes, key_indicator: bytes) -> bytes:
        """REVEAL: recover the secret recorded by ``key_indicator``.

        This performs no caller authentication; see :meth:`authenticated_reveal`.

        Raises:
            DecryptionError: If the indicator does not authenticate for this request.
            IndexOutOfRangeError: If the recorded generation is not in the ring.
        """
        binding = request_binding(owner, token_id, request_nonce)
        try:
            generation = decrypt_index(self._keyring.index_encryption_key, key_indicator, binding)
        except DecryptionError:
            logger.warning("Key indicator rejected for token %d", token_id)
            raise
        return prf(self._keyring.commit_key(generation), binding)

    def authenticated_reveal(
        self,
        owner: str,
        token_id: int,
        request_nonce: bytes,
        key_indicator: bytes,
        timestamp: int,
        signature: bytes,
    ) -> bytes:
        """REVEAL preceded by a fresh challenge-response from ``owner``."""
        self.challenges.verify(owner, token_id, request_nonce, timestamp, signature)
        return self.reveal(owner, token_id, request_nonce, key_indicator)


class ValidatorSigner:
    """Validator identity that co-signs commitments for the bridge contract."""

    def __init__(self, private_key: str | bytes, config: BridgeConfig) -> None:
        if address_for_key(private_key) != config.validator:
            raise ConfigurationError("Validator key does not match the configured validator")
        self._private_key = private_key
        self.config = config

    @property
    def address(self) -> str:
        return self.config.validator

    def verify_burn_request(self, token_owner: str, token_id: int, owner_signature: bytes) -> None:
        """Check the owner's burn request before spending effort on COMMIT.

        Raises:
            SignatureError: If the owner did not sign a burn request for this deployment.
        """
        message = request_token_burn_message(self.config, token_owner, token_id)
        if not verify_signature(token_owner, message, owner_signature):
            logger.warning("Burn request signature rejected for token %d", token_id)
            raise SignatureError("Invalid owner signature for burn request")

    def sign_commit(
        self,
        token_owner: str,
        token_id: int,
        token_uri: str,
        commitment: bytes,
        request_timestamp: int,
    ) -> bytes:
        """Sign the ``Commit`` message the bridge contract verifies."""
        message = commit_message(
            self.config,
            token_owner,
            token_id,
            token_uri,
            commitment,
            request_timestamp,
        )
        return sign_message(self._private_key, message)


def load_bridge_config() -> BridgeConfig:
    """Build the bridge configuration from global settings.

    Raises:
        ConfigurationError: If an address or the validator key is missing or invalid.
    """
    missing = [name for name, value in settings.bridge_addresses.items() if not value]
    if missing:
        raise ConfigurationError(f"Bridge addresses not configured: {', '.join(missing)}")
    if not settings.validator_private_key:
        raise ConfigurationError("VALIDATOR_PRIVATE_KEY is not configured")
    try:
        return BridgeConfig.create(
            from_token=settings.from_token or "",
            from_bridge=settings.from_bridge or "",
            to_token=settings.to_token or "",
            to_bridge=settings.to_bridge or "",
            validator=address_for_key(settings.validator_private_key),
        )
    except ValueError as err:
        raise ConfigurationError(f"Invalid bridge configuration: {err}") from err


def get_validator_signer() -> ValidatorSigner:
    """Return a signer for the configured validator identity."""
    config = load_bridge_config()
    return ValidatorSigner(settings.validator_private_key or "", config)
