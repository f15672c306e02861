"""
Token Stats model.

Derived per-token aggregates. Rebuilt from the event log (mint,
transfers, last sale) and from live marketplace state (supply,
listings, royalties); never edited by hand.
"""

from sqlalchemy import BigInteger, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class TokenStats(Base):
    """Per-token statistics."""

    __tablename__ = "token_stats"

    token_id: Mapped[int] = mapped_column(
        BigInteger, primary_key=True, autoincrement=False
    )

    # Owned by the stats materializer
    mint_block: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    mint_timestamp: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    transfer_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    last_sale_price: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_sale_block: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    # Owned by the marketplace listing sync (wei amounts as decimal strings)
    total_supply: Mapped[str | None] = mapped_column(Text, nullable=True)
    floor_price: Mapped[str | None] = mapped_column(Text, nullable=True)
    listed_count: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_volume: Mapped[str | None] = mapped_column(Text, nullable=True)
    royalty_recipient: Mapped[str | None] = mapped_column(
        String(42), nullable=True
    )
    royalty_bps: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def to_dict(self) -> dict:
        """Serialize for API responses."""
        return {
            "token_id": self.token_id,
            "mint_block": self.mint_block,
            "mint_timestamp": self.mint_timestamp,
            "transfer_count": self.transfer_count,
            "last_sale_price": self.last_sale_price,
            "last_sale_block": self.last_sale_block,
            "total_supply": self.total_supply,
            "floor_price": self.floor_price,
            "listed_count": self.listed_count,
            "total_volume": self.total_volume,
            "royalty_recipient": self.royalty_recipient,
            "royalty_bps": self.royalty_bps,
        }
