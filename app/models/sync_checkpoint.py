"""
Sync Checkpoint model.

Tracks the last fully ingested block per sync stream.
"""

from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class SyncCheckpoint(Base):
    """
    Last block ingested for a sync stream.

    Used to:
    - Resume sync after restart
    - Report sync progress
    """

    __tablename__ = "sync_status"

    key: Mapped[str] = mapped_column(String(50), primary_key=True)
    last_block: Mapped[int] = mapped_column(BigInteger, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
