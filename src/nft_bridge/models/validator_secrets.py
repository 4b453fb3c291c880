# src/nft_bridge/models/validator_secrets.py
"""Long-lived validator keys written once at setup."""

from sqlalchemy import BigInteger, Integer, LargeBinary
from sqlalchemy.orm import Mapped, mapped_column

from nft_bridge.db.session import Base

SINGLETON_ID = 1


class ValidatorSecrets(Base):
    """Index encryption key, challenge key and challenge lifetime.

    These keys have their own lifecycle and are never rotated together with
    the commit key ring.
    """

    __tablename__ = "validator_secrets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=SINGLETON_ID)
    index_encryption_key: Mapped[bytes] = mapped_column(LargeBinary(32), nullable=False)
    challenge_gen_key: Mapped[bytes] = mapped_column(LargeBinary(32), nullable=False)
    challenge_lifetime_seconds: Mapped[int] = mapped_column(BigInteger, nullable=False)
