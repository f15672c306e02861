"""
NFT content cache model.

Immutable token data resolved from the content contract. Only rows
with content are considered cached.
"""

from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class Nft(Base):
    """Cached token metadata and content."""

    __tablename__ = "nfts"
    __table_args__ = (Index("idx_nfts_author", "author"),)

    token_id: Mapped[int] = mapped_column(
        BigInteger, primary_key=True, autoincrement=False
    )
    uri: Mapped[str] = mapped_column(Text, nullable=False)
    author: Mapped[str] = mapped_column(String(42), nullable=False)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    text_uri: Mapped[str | None] = mapped_column(Text, nullable=True)
    content_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    @property
    def is_complete(self) -> bool:
        """Rows without content are cache misses."""
        return self.content is not None

    def to_dict(self) -> dict:
        """Serialize for API responses."""
        return {
            "token_id": self.token_id,
            "uri": self.uri,
            "author": self.author,
            "name": self.name,
            "description": self.description,
            "text_uri": self.text_uri,
            "content_type": self.content_type,
            "content": self.content,
        }
