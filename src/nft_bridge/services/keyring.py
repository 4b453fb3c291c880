"""Commit key ring: an append-only, versioned sequence of symmetric keys.

Replicas never hold the ring as mutable global state. Each operation works on
an immutable :class:`KeyRingSnapshot` loaded from the shared store, and the
store only ever appends new generations. Rotations must go through a single
writer; the store's primary key turns a lost race into
:class:`ConcurrentRotationError` rather than a silent overwrite.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Final

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from nft_bridge.core.exceptions import (
    ConcurrentRotationError,
    IndexOutOfRangeError,
    SetupError,
)
from nft_bridge.models import CommitKey, ValidatorSecrets
from nft_bridge.models.validator_secrets import SINGLETON_ID
from nft_bridge.utils.hash import KEY_LENGTH_BYTES

logger = logging.getLogger(__name__)

MIN_CHALLENGE_LIFETIME_SECONDS: Final[int] = 1


def _check_key(name: str, key: bytes) -> bytes:
    if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_LENGTH_BYTES:
        raise ValueError(f"{name} must be {KEY_LENGTH_BYTES} bytes")
    return bytes(key)


@dataclass(frozen=True)
class KeyRingSnapshot:
    """Consistent view of every key a validator replica needs."""

    commit_keys: tuple[bytes, ...]
    index_encryption_key: bytes
    challenge_gen_key: bytes
    challenge_lifetime: int

    def __post_init__(self) -> None:
        if not self.commit_keys:
            raise SetupError("Key ring has no commit key generations")
        for generation, key in enumerate(self.commit_keys):
            _check_key(f"commitKey[{generation}]", key)
        _check_key("indexEncryptionKey", self.index_encryption_key)
        _check_key("challengeGenKey", self.challenge_gen_key)
        if self.challenge_lifetime < MIN_CHALLENGE_LIFETIME_SECONDS:
            raise ValueError("challengeLifetime must be positive")

    @classmethod
    def setup(
        cls,
        init_commit_key: bytes,
        init_index_enc_key: bytes,
        init_challenge_gen_key: bytes,
        init_challenge_lifetime: int,
    ) -> KeyRingSnapshot:
        """Build the generation-0 ring."""
        return cls(
            commit_keys=(bytes(init_commit_key),),
            index_encryption_key=bytes(init_index_enc_key),
            challenge_gen_key=bytes(init_challenge_gen_key),
            challenge_lifetime=int(init_challenge_lifetime),
        )

    @property
    def current_generation(self) -> int:
        """Index ``n`` of the newest commit key."""
        return len(self.commit_keys) - 1

    def commit_key(self, generation: int) -> bytes:
        """Return ``commitKey[generation]``.

        Raises:
            IndexOutOfRangeError: If the generation is not in ``0..n``.
        """
        if not 0 <= generation <= self.current_generation:
            raise IndexOutOfRangeError(
                f"Key generation {generation} outside ring 0..{self.current_generation}"
            )
        return self.commit_keys[generation]

    def rotated(self, new_commit_key: bytes) -> KeyRingSnapshot:
        """Return a new snapshot with ``new_commit_key`` appended as generation n + 1."""
        return KeyRingSnapshot(
            commit_keys=(*self.commit_keys, _check_key("newCommitKey", new_commit_key)),
            index_encryption_key=self.index_encryption_key,
            challenge_gen_key=self.challenge_gen_key,
            challenge_lifetime=self.challenge_lifetime,
        )


class KeyRingStore:
    """Durable key ring backed by the shared database."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def is_setup(self) -> bool:
        """Return True once SETUP has been run against this store."""
        return self._db.get(ValidatorSecrets, SINGLETON_ID) is not None

    def setup(
        self,
        init_commit_key: bytes,
        init_index_enc_key: bytes,
        init_challenge_gen_key: bytes,
        init_challenge_lifetime: int,
    ) -> KeyRingSnapshot:
        """Initialize the store with generation 0 and the long-lived keys.

        Raises:
            SetupError: If the store has already been set up.
        """
        snapshot = KeyRingSnapshot.setup(
            init_commit_key,
            init_index_enc_key,
            init_challenge_gen_key,
            init_challenge_lifetime,
        )
        if self.is_setup():
            raise SetupError("Key ring has already been set up")

        self._db.add(
            ValidatorSecrets(
                id=SINGLETON_ID,
                index_encryption_key=snapshot.index_encryption_key,
                challenge_gen_key=snapshot.challenge_gen_key,
                challenge_lifetime_seconds=snapshot.challenge_lifetime,
            )
        )
        self._db.add(CommitKey(generation=0, key_material=snapshot.commit_keys[0]))
        try:
            self._db.commit()
        except IntegrityError as err:
            self._db.rollback()
            raise SetupError("Key ring has already been set up") from err

        logger.info("Key ring set up at generation 0")
        return snapshot

    def rotate(self, new_commit_key: bytes) -> int:
        """Append a new commit key generation and return its index.

        Raises:
            SetupError: If the store has not been set up.
            ConcurrentRotationError: If another writer appended the generation first.
        """
        key = _check_key("newCommitKey", new_commit_key)
        if not self.is_setup():
            raise SetupError("Key ring has not been set up")

        current = self._db.scalar(select(func.max(CommitKey.generation)))
        generation = 0 if current is None else int(current) + 1
        self._db.add(CommitKey(generation=generation, key_material=key))
        try:
            self._db.commit()
        except IntegrityError as err:
            self._db.rollback()
            raise ConcurrentRotationError(
                f"Generation {generation} was appended by another writer"
            ) from err

        logger.info("Rotated commit key ring to generation %d", generation)
        return generation

    def load(self) -> KeyRingSnapshot:
        """Read a consistent snapshot of the ring.

        Raises:
            SetupError: If the store is not set up or its generations are not contiguous.
        """
        secrets_row = self._db.get(ValidatorSecrets, SINGLETON_ID)
        if secrets_row is None:
            raise SetupError("Key ring has not been set up")

        rows = self._db.scalars(select(CommitKey).order_by(CommitKey.generation)).all()
        for expected, row in enumerate(rows):
            if row.generation != expected:
                raise SetupError(
                    f"Key ring is corrupted: expected generation {expected}, found {row.generation}"
                )

        return KeyRingSnapshot(
            commit_keys=tuple(bytes(row.key_material) for row in rows),
            index_encryption_key=bytes(secrets_row.index_encryption_key),
            challenge_gen_key=bytes(secrets_row.challenge_gen_key),
            challenge_lifetime=int(secrets_row.challenge_lifetime_seconds),
        )
