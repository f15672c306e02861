"""Data access layer."""

from app.repositories.author_stats_repository import AuthorStatsRepository
from app.repositories.base import BaseRepository
from app.repositories.block_repository import BlockRepository
from app.repositories.checkpoint_repository import CheckpointRepository
from app.repositories.event_repository import EventRepository
from app.repositories.nft_repository import NftRepository
from app.repositories.render_job_repository import RenderJobRepository
from app.repositories.token_stats_repository import TokenStatsRepository

__all__ = [
    "AuthorStatsRepository",
    "BaseRepository",
    "BlockRepository",
    "CheckpointRepository",
    "EventRepository",
    "NftRepository",
    "RenderJobRepository",
    "TokenStatsRepository",
]
