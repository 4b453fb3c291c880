# src/nft_bridge/models/commit_key.py
"""Append-only commit key generations."""

from sqlalchemy import BigInteger, LargeBinary
from sqlalchemy.orm import Mapped, mapped_column

from nft_bridge.db.session import Base


class CommitKey(Base):
    """One generation of the commit key ring.

    Rows are only ever inserted. The primary key makes two writers racing to
    append the same generation collide instead of overwriting each other.
    """

    __tablename__ = "commit_keys"

    generation: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    key_material: Mapped[bytes] = mapped_column(LargeBinary(32), nullable=False)
