"""
Enumerations shared by models and services.
"""

from enum import Enum


class RenderJobStatus(str, Enum):
    """Render job lifecycle states."""

    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Terminal states are never left automatically."""
        return self in (RenderJobStatus.COMPLETED, RenderJobStatus.FAILED)
