"""
NFT Cache Service.

Resolves token metadata and content from the content contract and
caches complete, validated records. Incomplete or invalid data is never
cached, so the next request retries the fetch.
"""

import asyncio
import json
from typing import Any

import aiohttp
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config.constants import CONTENT_ABI, EVENT_TRANSFER_SINGLE
from app.repositories.event_repository import EventRepository
from app.repositories.nft_repository import NftRepository
from app.services.chain_client import ChainClient
from app.services.stats_materializer import first_mints
from app.utils.data_uri import decode_data_uri, is_data_uri
from app.utils.exceptions import ContentValidationError
from app.validators.content import validate_nft_data


class NftCacheService:
    """Read-through cache of token content."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        chain: ChainClient,
        content_address: str,
        max_content_bytes: int = 10 * 1024 * 1024,
        fetch_timeout: float = 15.0,
        prewarm_batch_size: int = 5,
        prewarm_batch_delay: float = 0.5,
    ):
        """
        Initialize cache service.

        Args:
            session_maker: Session factory
            chain: Chain client
            content_address: Content contract address
            max_content_bytes: Content size cap
            fetch_timeout: Timeout for HTTP metadata/content fetches
            prewarm_batch_size: Tokens fetched concurrently by prewarm()
            prewarm_batch_delay: Seconds between prewarm batches
        """
        self.session_maker = session_maker
        self.chain = chain
        self.content_address = content_address
        self.max_content_bytes = max_content_bytes
        self.fetch_timeout = fetch_timeout
        self.prewarm_batch_size = prewarm_batch_size
        self.prewarm_batch_delay = prewarm_batch_delay
        self._http: aiohttp.ClientSession | None = None

    def _get_http(self) -> aiohttp.ClientSession:
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.fetch_timeout)
            )
        return self._http

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._http and not self._http.closed:
            await self._http.close()

    async def get_nft(self, token_id: int) -> dict[str, Any]:
        """
        Get token data, fetching and caching it on a miss.

        Args:
            token_id: Token ID

        Returns:
            Token data dict; content is None if it could not be resolved

        Raises:
            ContentValidationError: If the resolved data is invalid
            ChainReadError: If the contract reads fail
        """
        async with self.session_maker() as session:
            repo = NftRepository(session)
            cached = await repo.get_by_id(token_id)
            if cached is not None and cached.is_complete:
                return cached.to_dict()
            if cached is not None:
                await repo.delete_token(token_id)
                await session.commit()

        data = await self.fetch_from_chain(token_id)

        if data["content"] is None:
            logger.warning(f"[NftCache] Token {token_id} content unavailable, not caching")
            return data

        async with self.session_maker() as session:
            stored = await NftRepository(session).upsert(data)
            await session.commit()
            return stored.to_dict()

    async def refresh(self, token_id: int) -> dict[str, Any]:
        """Drop the cached row and fetch again."""
        async with self.session_maker() as session:
            await NftRepository(session).delete_token(token_id)
            await session.commit()
        return await self.get_nft(token_id)

    async def fetch_from_chain(self, token_id: int) -> dict[str, Any]:
        """
        Resolve token data without touching the cache.

        Raises:
            ContentValidationError: If the resolved data is invalid
        """
        uri, author = await asyncio.gather(
            self.chain.read_contract(self.content_address, CONTENT_ABI, "uri", token_id),
            self.chain.read_contract(self.content_address, CONTENT_ABI, "authorOf", token_id),
        )

        metadata = await self.fetch_metadata(token_id, uri)
        text_uri = metadata.get("text_uri") or None
        content, content_type = await self.fetch_content(text_uri)

        problems = validate_nft_data(uri, author, content, self.max_content_bytes)
        if problems:
            logger.error(f"[NftCache] Token {token_id} validation failed: {', '.join(problems)}")
            raise ContentValidationError(token_id, problems)

        return {
            "token_id": token_id,
            "uri": uri,
            "author": author.lower(),
            "name": metadata.get("name") or None,
            "description": metadata.get("description") or None,
            "text_uri": text_uri,
            "content_type": content_type,
            "content": content,
        }

    async def fetch_metadata(self, token_id: int, uri: str) -> dict[str, Any]:
        """
        Resolve the metadata JSON behind a token URI.

        Returns:
            Metadata dict, empty if it could not be resolved
        """
        if not uri or not isinstance(uri, str):
            return {}
        try:
            if is_data_uri(uri):
                _, text = decode_data_uri(uri)
            else:
                async with self._get_http().get(uri) as response:
                    response.raise_for_status()
                    text = await response.text()
            metadata = json.loads(text)
        except (aiohttp.ClientError, TimeoutError, ValueError) as e:
            logger.warning(f"[NftCache] Token {token_id} metadata unavailable: {e}")
            return {}
        return metadata if isinstance(metadata, dict) else {}

    async def fetch_content(self, text_uri: str | None) -> tuple[str | None, str | None]:
        """
        Resolve content behind a text URI.

        Returns:
            Tuple of (content, content_type); (None, None) on failure
        """
        if not text_uri:
            return None, None
        try:
            if is_data_uri(text_uri):
                content_type, content = decode_data_uri(text_uri)
                return content, content_type

            async with self._get_http().get(text_uri) as response:
                response.raise_for_status()
                body = await response.content.read(self.max_content_bytes + 1)
                content_type = response.headers.get("Content-Type", "").split(";")[0]
                return body.decode("utf-8", errors="replace"), content_type or "text/plain"
        except (aiohttp.ClientError, TimeoutError, ValueError) as e:
            logger.warning(f"[NftCache] Content fetch failed for {text_uri[:80]}: {e}")
            return None, None

    async def prewarm(self) -> dict[str, int]:
        """
        Fetch every minted token that is not cached yet.

        Returns:
            Dict with fetched, failed and total counts
        """
        async with self.session_maker() as session:
            minted = first_mints(await EventRepository(session).get_by_type(EVENT_TRANSFER_SINGLE))
            cached = set(await NftRepository(session).get_cached_token_ids())

        missing = sorted(set(minted) - cached)
        logger.info(f"[NftCache] Prewarming {len(missing)} tokens")

        fetched = failed = 0
        for start in range(0, len(missing), self.prewarm_batch_size):
            if start > 0 and self.prewarm_batch_delay:
                await asyncio.sleep(self.prewarm_batch_delay)

            batch = missing[start:start + self.prewarm_batch_size]
            results = await asyncio.gather(
                *(self.get_nft(token_id) for token_id in batch),
                return_exceptions=True,
            )
            for token_id, result in zip(batch, results):
                if isinstance(result, BaseException):
                    if isinstance(result, asyncio.CancelledError):
                        raise result
                    logger.warning(f"[NftCache] Prewarm of token {token_id} failed: {result}")
                    failed += 1
                elif result.get("content") is None:
                    failed += 1
                else:
                    fetched += 1

        return {"fetched": fetched, "failed": failed, "total": len(missing)}
