"""
Chain Event model.

Append-only log of contract events. The single source of truth for
every derived table.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class ChainEvent(Base):
    """
    A single normalized contract event.

    (tx_hash, log_index) identifies a log globally; re-ingesting the
    same log is a no-op.
    """

    __tablename__ = "events"
    __table_args__ = (
        UniqueConstraint("tx_hash", "log_index", name="uq_events_tx_log"),
        Index("idx_events_token_id", "token_id"),
        Index("idx_events_block", "block_number"),
        Index("idx_events_type", "event_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    tx_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    log_index: Mapped[int] = mapped_column(Integer, nullable=False)
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    token_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Event args; large integers stored as decimal strings
    data: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ChainEvent(type={self.event_type}, token={self.token_id}, "
            f"block={self.block_number}, tx={self.tx_hash[:16]}..., "
            f"log={self.log_index})>"
        )
