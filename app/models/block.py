"""
Block model.

Block timestamps are immutable once the block is final, so a row is
written once and never updated.
"""

from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class Block(Base):
    """Cached block timestamp."""

    __tablename__ = "blocks"

    block_number: Mapped[int] = mapped_column(
        BigInteger, primary_key=True, autoincrement=False
    )
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
