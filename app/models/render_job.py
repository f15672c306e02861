"""
Render Job model.

Tracks preview image generation per token:
pending -> generating -> completed | failed.
"""

from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import RenderJobStatus


class RenderJob(Base):
    """One render job per token, created at most once."""

    __tablename__ = "render_jobs"
    __table_args__ = (Index("idx_render_jobs_status", "status"),)

    token_id: Mapped[int] = mapped_column(
        BigInteger, primary_key=True, autoincrement=False
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RenderJobStatus.PENDING.value
    )
    file_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    generated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<RenderJob(token={self.token_id}, status={self.status})>"
