"""Source-chain bridge contract: verify, burn and emit ``Commit``.

Calls are serialized, and every check runs before the burn, so a failed call
leaves neither a burned token nor an event behind. The contract stores no
commitment data; the event log is the only record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Lock
from typing import cast

from nft_bridge.contracts.token import TokenContract
from nft_bridge.core.exceptions import (
    AuthorizationError,
    OwnershipMismatchError,
    SetupError,
    SignatureError,
)
from nft_bridge.core.security import canonical_signature, normalize_address, verify_signature
from nft_bridge.services.messages import (
    BridgeConfig,
    commit_message,
    request_token_burn_message,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitEvent:
    """``Commit(tokenOwner indexed, tokenId indexed, commitment, requestTimestamp, validatorSignature)``."""

    token_owner: str
    token_id: int
    commitment: bytes
    request_timestamp: int
    validator_signature: bytes


class BridgeContract:
    """Commit-and-burn bridge for one source token contract."""

    def __init__(self, address: str, admin: str) -> None:
        self.address = normalize_address(address)
        self.admin = normalize_address(admin)
        self.validator: str | None = None
        self.events: list[CommitEvent] = []
        self._from_token: TokenContract | None = None
        self._to_token: str | None = None
        self._to_bridge: str | None = None
        self._lock = Lock()

    @property
    def initialized(self) -> bool:
        return self._from_token is not None

    @property
    def config(self) -> BridgeConfig:
        """Current deployment configuration.

        Raises:
            SetupError: If the contract is not initialized or has no validator.
        """
        if self._from_token is None or self._to_token is None or self._to_bridge is None:
            raise SetupError("Bridge contract is not initialized")
        if self.validator is None:
            raise SetupError("Bridge validator is not set")
        return BridgeConfig(
            from_token=self._from_token.address,
            from_bridge=self.address,
            to_token=self._to_token,
            to_bridge=self._to_bridge,
            validator=self.validator,
        )

    def initialize(self, caller: str, from_token: TokenContract, to_token: str, to_bridge: str) -> None:
        """Bind the contract to its source token and destination pair, once."""
        with self._lock:
            self._require_admin(caller)
            if self.initialized:
                raise SetupError("Bridge contract is already initialized")
            self._to_token = normalize_address(to_token)
            self._to_bridge = normalize_address(to_bridge)
            self._from_token = from_token
        logger.info("Bridge %s initialized for token %s", self.address, from_token.address)

    def set_validator(self, caller: str, new_validator: str) -> None:
        """Replace the validator identity immediately."""
        with self._lock:
            self._require_admin(caller)
            self.validator = normalize_address(new_validator)
        logger.info("Bridge %s validator set to %s", self.address, self.validator)

    def commit_and_burn(
        self,
        caller: str,
        token_owner: str,
        token_id: int,
        commitment: bytes,
        request_timestamp: int,
        owner_signature: bytes,
        validator_signature: bytes,
    ) -> CommitEvent:
        """Verify both signatures and ownership, burn the token and emit ``Commit``.

        Raises:
            SetupError: If the contract is not ready.
            AuthorizationError: If ``caller`` is not the validator.
            SignatureError: If either signature does not verify, including when
                the signed fields are malformed.
            OwnershipMismatchError: If ``token_owner`` does not hold the token.
        """
        with self._lock:
            config = self.config
            from_token = cast(TokenContract, self._from_token)

            if not _same_address(caller, config.validator):
                raise AuthorizationError("Only the validator may commit")

            try:
                owner = normalize_address(token_owner)
                burn_request = request_token_burn_message(config, owner, token_id)
            except ValueError as err:
                raise SignatureError(f"Malformed burn request: {err}") from err
            if not verify_signature(owner, burn_request, owner_signature):
                raise SignatureError("Invalid owner signature")

            if from_token.owner_of(token_id) != owner:
                raise OwnershipMismatchError(f"{owner} does not own token {token_id}")

            try:
                commit = commit_message(
                    config,
                    owner,
                    token_id,
                    from_token.token_uri(token_id),
                    commitment,
                    request_timestamp,
                )
            except ValueError as err:
                raise SignatureError(f"Malformed commit message: {err}") from err
            if not verify_signature(config.validator, commit, validator_signature):
                raise SignatureError("Invalid validator signature")

            from_token.burn(self.address, token_id)
            event = CommitEvent(
                token_owner=owner,
                token_id=token_id,
                commitment=bytes(commitment),
                request_timestamp=int(request_timestamp),
                validator_signature=canonical_signature(validator_signature),
            )
            self.events.append(event)

        logger.info("Commit emitted for token %d owned by %s", token_id, owner)
        return event

    def commit_events(
        self,
        token_owner: str | None = None,
        token_id: int | None = None,
    ) -> list[CommitEvent]:
        """Filter the event log by its indexed fields."""
        owner = normalize_address(token_owner) if token_owner is not None else None
        return [
            event
            for event in self.events
            if (owner is None or event.token_owner == owner)
            and (token_id is None or event.token_id == token_id)
        ]

    def _require_admin(self, caller: str) -> None:
        if not _same_address(caller, self.admin):
            raise AuthorizationError("Only the bridge admin may call this")


def _same_address(candidate: str, expected: str) -> bool:
    try:
        return normalize_address(candidate) == expected
    except ValueError:
        return False
