"""
Author Stats model.

Derived per-author aggregates. first_mint_block and
first_mint_timestamp are write-once.
"""

from sqlalchemy import BigInteger, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class AuthorStats(Base):
    """Per-author statistics (address stored lowercase)."""

    __tablename__ = "authors"
    __table_args__ = (Index("idx_authors_minted", "total_minted"),)

    address: Mapped[str] = mapped_column(String(42), primary_key=True)
    total_minted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    first_mint_block: Mapped[int | None] = mapped_column(
        BigInteger, nullable=True
    )
    first_mint_timestamp: Mapped[int | None] = mapped_column(
        BigInteger, nullable=True
    )

    def to_dict(self) -> dict:
        """Serialize for API responses."""
        return {
            "address": self.address,
            "total_minted": self.total_minted,
            "first_mint_block": self.first_mint_block,
            "first_mint_timestamp": self.first_mint_timestamp,
        }
