"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from app.models.author_stats import AuthorStats
from app.models.base import Base
from app.models.block import Block
from app.models.chain_event import ChainEvent
from app.models.enums import RenderJobStatus
from app.models.nft import Nft
from app.models.render_job import RenderJob
from app.models.sync_checkpoint import SyncCheckpoint
from app.models.token_stats import TokenStats

__all__ = [
    "AuthorStats",
    "Base",
    "Block",
    "ChainEvent",
    "Nft",
    "RenderJob",
    "RenderJobStatus",
    "SyncCheckpoint",
    "TokenStats",
]
