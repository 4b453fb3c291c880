"""Stateless challenge-response authentication for token owners."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from nft_bridge.core.exceptions import FreshnessError, SignatureError
from nft_bridge.core.security import sign_message, verify_signature
from nft_bridge.services.messages import burn_challenge_message, challenge_input
from nft_bridge.utils.hash import prf

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def system_clock() -> int:
    """Return the current Unix time in whole seconds."""
    return int(time.time())


@dataclass(frozen=True)
class IssuedChallenge:
    """Challenge handed to a client; the server keeps no copy."""

    timestamp: int
    challenge: bytes


class ChallengeService:
    """Issue and verify challenges without storing them.

    A challenge is re-derived from its timestamp with the challenge key, so any
    replica sharing the key can verify a challenge issued by any other.
    """

    def __init__(
        self,
        challenge_gen_key: bytes,
        challenge_lifetime: int,
        clock: Clock | None = None,
    ) -> None:
        self._key = challenge_gen_key
        self._lifetime = int(challenge_lifetime)
        self._clock = clock or system_clock

    @property
    def lifetime(self) -> int:
        return self._lifetime

    def derive(self, timestamp: int) -> bytes:
        """Return ``PRF(challengeGenKey, timestamp)``."""
        return prf(self._key, challenge_input(timestamp))

    def issue(self) -> IssuedChallenge:
        """ISSUE_CHALLENGE: bind a fresh challenge to the current time."""
        timestamp = self._clock()
        return IssuedChallenge(timestamp=timestamp, challenge=self.derive(timestamp))

    def check_freshness(self, timestamp: int) -> None:
        """Require ``timestamp <= now < timestamp + lifetime``.

        Raises:
            FreshnessError: If the timestamp is in the future or has expired.
        """
        now = self._clock()
        if now < timestamp:
            raise FreshnessError("Challenge timestamp is in the future")
        if now >= timestamp + self._lifetime:
            raise FreshnessError("Challenge has expired")

    def verify(
        self,
        owner: str,
        token_id: int,
        request_nonce: bytes,
        timestamp: int,
        signature: bytes,
    ) -> None:
        """VERIFY: authenticate ``owner`` for a specific token and request.

        Raises:
            FreshnessError: If the challenge is outside its validity window.
            SignatureError: If ``signature`` was not made by ``owner`` over the
                re-derived challenge for this token and request nonce.
        """
        self.check_freshness(timestamp)
        message = burn_challenge_message(
            token_id,
            request_nonce,
            timestamp,
            self.derive(timestamp),
        )
        if not verify_signature(owner, message, signature):
            logger.warning("Challenge response rejected for token %d", token_id)
            raise SignatureError("Invalid signature for challenge response")


def sign_challenge(
    private_key: str | bytes,
    token_id: int,
    request_nonce: bytes,
    issued: IssuedChallenge,
) -> bytes:
    """Answer an issued challenge as the token owner."""
    message = burn_challenge_message(token_id, request_nonce, issued.timestamp, issued.challenge)
    return sign_message(private_key, message)
