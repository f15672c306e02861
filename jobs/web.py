"""
HTTP and WebSocket API.

Thin aiohttp routing layer over the indexer. Reads come from the
database; uncached tokens and blocks are read through from the chain,
and the sync status also reads the chain head.
"""

import asyncio
import hmac

from aiohttp import WSMsgType, web
from loguru import logger

from app.config.constants import CATCHING_UP_THRESHOLD_BLOCKS
from app.repositories.author_stats_repository import AuthorStatsRepository
from app.repositories.event_repository import EventRepository
from app.repositories.nft_repository import NftRepository
from app.repositories.token_stats_repository import TokenStatsRepository
from app.services.event_sync import sync_progress
from app.services.indexer import Indexer
from app.utils.exceptions import ContentValidationError, IndexerError
from app.validators.address import validate_address

INDEXER = web.AppKey("indexer", Indexer)
ADMIN_SECRET = web.AppKey("admin_secret", str)
SYNC_INTERVAL = web.AppKey("sync_interval", float)

MAX_AUTHORS_LIMIT = 200
DEFAULT_AUTHORS_LIMIT = 50
MAX_NFT_BATCH = 50
MAX_BLOCK_BATCH = 100

routes = web.RouteTableDef()


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


def _token_id(request: web.Request, name: str = "token_id") -> int:
    """Parse a positive token id from the path or raise 400."""
    try:
        token_id = int(request.match_info[name])
    except ValueError:
        token_id = 0
    if token_id < 1:
        raise web.HTTPBadRequest(
            text='{"error": "Invalid token ID"}', content_type="application/json"
        )
    return token_id


@routes.post("/api/sync")
async def trigger_sync(request: web.Request) -> web.Response:
    """Run one sync call."""
    indexer = request.app[INDEXER]
    try:
        result = await indexer.event_sync.sync()
    except IndexerError as e:
        logger.error(f"[API] Sync failed: {e}")
        return _error("Sync failed", 500)
    return web.json_response(result.to_payload())


@routes.post("/api/sync/force")
async def force_sync(request: web.Request) -> web.Response:
    """Sync now and refresh derived data."""
    try:
        payload = await request.app[INDEXER].force_sync()
    except IndexerError as e:
        logger.error(f"[API] Force sync failed: {e}")
        return _error("Sync failed", 500)
    return web.json_response(payload)


@routes.post("/api/sync/reset")
async def reset_sync(request: web.Request) -> web.Response:
    """Wipe synced data and resync from genesis (admin only)."""
    expected = request.app[ADMIN_SECRET]
    provided = request.headers.get("X-Admin-Secret") or request.query.get("secret") or ""
    if not expected or not hmac.compare_digest(provided, expected):
        return _error("Unauthorized", 403)

    try:
        payload = await request.app[INDEXER].reset()
    except IndexerError as e:
        logger.error(f"[API] Sync reset failed: {e}")
        return web.json_response({"error": "Reset failed", "message": str(e)}, status=500)
    if not payload["reset"]:
        payload["error"] = "Sync in progress, retry the reset when it finishes"
        return web.json_response(payload, status=409)
    payload["message"] = "Sync reset complete. Will continue syncing in background."
    return web.json_response(payload)


@routes.get("/api/sync/status")
async def sync_status(request: web.Request) -> web.Response:
    """Checkpoint rows, totals and progress."""
    try:
        status = await request.app[INDEXER].event_sync.get_sync_status()
    except IndexerError as e:
        logger.error(f"[API] Status failed: {e}")
        return _error("Failed to get status", 500)
    return web.json_response(status)


@routes.get("/api/events/{token_id}")
async def token_events(request: web.Request) -> web.Response:
    """Event history of one token."""
    token_id = _token_id(request)
    event_sync = request.app[INDEXER].event_sync
    events = await event_sync.get_token_events(token_id)
    return web.json_response({"events": events, "_meta": event_sync.freshness()})


@routes.get("/api/activity")
async def activity(request: web.Request) -> web.Response:
    """Recent events across all tokens with sync progress."""
    indexer = request.app[INDEXER]
    event_sync = indexer.event_sync
    events = await event_sync.get_recent_events()

    meta = event_sync.freshness()
    meta["syncIntervalSeconds"] = request.app[SYNC_INTERVAL]
    meta.update(syncProgress=100, blocksRemaining=0, isCatchingUp=False)
    try:
        head = await indexer.chain.get_block_number()
    except IndexerError as e:
        logger.debug(f"[API] Head unavailable for activity meta: {e}")
    else:
        synced = event_sync.state.last_sync_block
        remaining = max(0, head - synced)
        meta.update(
            syncProgress=sync_progress(synced, head),
            blocksRemaining=remaining,
            isCatchingUp=remaining > CATCHING_UP_THRESHOLD_BLOCKS,
        )
    return web.json_response({"events": events, "_meta": meta})


@routes.get("/api/stats")
async def global_stats(request: web.Request) -> web.Response:
    """Artist, NFT and event totals."""
    async with request.app[INDEXER].session_maker() as session:
        nfts = NftRepository(session)
        return web.json_response({
            "uniqueArtists": await nfts.count_distinct_authors(),
            "totalNfts": await nfts.count(),
            "totalEvents": await EventRepository(session).count(),
        })


@routes.get("/api/token/{token_id}/stats")
async def token_stats(request: web.Request) -> web.Response:
    """Derived stats of one token."""
    token_id = _token_id(request)
    async with request.app[INDEXER].session_maker() as session:
        stats = await TokenStatsRepository(session).get_by_id(token_id)
    if stats is None:
        return _error("Token stats not found", 404)
    return web.json_response(stats.to_dict())


@routes.get("/api/author/{address}")
async def author_profile(request: web.Request) -> web.Response:
    """Author stats and their cached tokens."""
    address = request.match_info["address"].lower()
    is_valid, error = validate_address(address)
    if not is_valid:
        return _error(error, 400)

    async with request.app[INDEXER].session_maker() as session:
        author = await AuthorStatsRepository(session).get_by_id(address)
        nfts = await NftRepository(session).get_by_author(address)

    return web.json_response({
        "author": author.to_dict() if author else {"address": address, "total_minted": len(nfts)},
        "nfts": [
            {
                "token_id": nft.token_id,
                "name": nft.name,
                "description": nft.description,
                "content_type": nft.content_type,
            }
            for nft in nfts
        ],
    })


@routes.get("/api/authors")
async def authors(request: web.Request) -> web.Response:
    """Author leaderboard."""
    try:
        limit = int(request.query.get("limit", DEFAULT_AUTHORS_LIMIT))
    except ValueError:
        limit = DEFAULT_AUTHORS_LIMIT
    limit = min(limit if limit > 0 else DEFAULT_AUTHORS_LIMIT, MAX_AUTHORS_LIMIT)

    async with request.app[INDEXER].session_maker() as session:
        rows = await AuthorStatsRepository(session).get_leaderboard(limit)
    return web.json_response({"authors": [row.to_dict() for row in rows]})


@routes.get("/api/nft/{token_id}")
async def nft(request: web.Request) -> web.Response:
    """Token data, fetched and cached on a miss."""
    token_id = _token_id(request)
    try:
        data = await request.app[INDEXER].nft_cache.get_nft(token_id)
    except ContentValidationError as e:
        return _error(str(e), 422)
    except IndexerError as e:
        logger.error(f"[API] NFT {token_id} fetch failed: {e}")
        return _error("Failed to fetch NFT", 500)
    return web.json_response(data)


async def _json_list(request: web.Request, key: str) -> list | None:
    """Read a non-empty list from the JSON body, or None."""
    try:
        body = await request.json()
    except ValueError:
        return None
    values = body.get(key) if isinstance(body, dict) else None
    if not isinstance(values, list) or not values:
        return None
    return values


@routes.post("/api/nfts/batch")
async def nfts_batch(request: web.Request) -> web.Response:
    """Several tokens at once; one failing token does not fail the rest."""
    ids = await _json_list(request, "ids")
    if ids is None:
        return _error("ids array required", 400)
    ids = ids[:MAX_NFT_BATCH]

    nft_cache = request.app[INDEXER].nft_cache

    async def one(raw_id) -> dict:
        token_id = int(raw_id)
        if token_id < 1:
            raise ValueError(f"Invalid token ID {raw_id}")
        return await nft_cache.get_nft(token_id)

    results = await asyncio.gather(*(one(raw_id) for raw_id in ids), return_exceptions=True)
    nfts = []
    for raw_id, result in zip(ids, results):
        if isinstance(result, BaseException):
            if isinstance(result, asyncio.CancelledError):
                raise result
            logger.warning(f"[API] Batch NFT {raw_id} failed: {result}")
            nfts.append({"id": raw_id, "error": "Not found"})
        else:
            nfts.append({"id": raw_id, "data": result})
    return web.json_response({"nfts": nfts})


@routes.get("/api/block/{number}")
async def block_timestamp(request: web.Request) -> web.Response:
    """Timestamp of one block, fetched and cached on a miss."""
    try:
        block_number = int(request.match_info["number"])
    except ValueError:
        block_number = -1
    if block_number < 0:
        return _error("Invalid block number", 400)

    try:
        timestamp = await request.app[INDEXER].blocks.get_timestamp(block_number)
    except IndexerError as e:
        logger.error(f"[API] Block {block_number} fetch failed: {e}")
        return _error("Failed to fetch block", 500)
    return web.json_response({"blockNumber": block_number, "timestamp": timestamp})


@routes.post("/api/blocks/batch")
async def blocks_batch(request: web.Request) -> web.Response:
    """Several block timestamps at once; unavailable ones come back as null."""
    raw_numbers = await _json_list(request, "blockNumbers")
    if raw_numbers is None:
        return _error("blockNumbers array required", 400)
    raw_numbers = raw_numbers[:MAX_BLOCK_BATCH]

    numbers: dict[int, int] = {}
    for index, raw in enumerate(raw_numbers):
        try:
            number = int(raw)
        except (ValueError, TypeError):
            continue
        if number >= 0:
            numbers[index] = number

    timestamps = await request.app[INDEXER].blocks.get_many(sorted(set(numbers.values())))
    return web.json_response({
        "blocks": [
            {
                "blockNumber": raw,
                "timestamp": timestamps.get(numbers[index]) if index in numbers else None,
            }
            for index, raw in enumerate(raw_numbers)
        ]
    })


@routes.post("/api/nft/{token_id}/refresh")
async def refresh_nft(request: web.Request) -> web.Response:
    """Invalidate and refetch a cached token."""
    token_id = _token_id(request)
    try:
        data = await request.app[INDEXER].nft_cache.refresh(token_id)
    except IndexerError as e:
        logger.error(f"[API] Refresh NFT {token_id} failed: {e}")
        return _error("Failed to refresh NFT", 500)
    return web.json_response({"success": True, "nft": data})


@routes.post("/api/prewarm")
async def prewarm(request: web.Request) -> web.Response:
    """Fill the content cache for every minted token."""
    try:
        result = await request.app[INDEXER].prewarm()
    except IndexerError as e:
        logger.error(f"[API] Prewarm failed: {e}")
        return _error("Prewarm failed", 500)
    return web.json_response(result)


@routes.get("/ws")
async def websocket(request: web.Request) -> web.WebSocketResponse:
    """
    Realtime channel.

    Clients receive newEvents and syncStatus messages. Sending
    {"action": "subscribe", "tokenId": N} restricts newEvents to the
    followed tokens; "unsubscribe" stops following one.
    """
    ws = web.WebSocketResponse(heartbeat=30)
    await ws.prepare(request)

    notifier = request.app[INDEXER].notifier
    subscription = notifier.subscribe()

    async def pump() -> None:
        while True:
            message = await subscription.get()
            await ws.send_json(message)

    sender = asyncio.create_task(pump())
    try:
        async for msg in ws:
            if msg.type != WSMsgType.TEXT:
                continue
            try:
                command = msg.json()
                token_id = int(command["tokenId"])
            except (ValueError, KeyError, TypeError):
                continue
            if command.get("action") == "subscribe":
                subscription.follow(token_id)
            elif command.get("action") == "unsubscribe":
                subscription.unfollow(token_id)
    finally:
        sender.cancel()
        await asyncio.gather(sender, return_exceptions=True)
        notifier.unsubscribe(subscription)
    return ws


def create_app(indexer: Indexer, admin_secret: str | None, sync_interval: float) -> web.Application:
    """
    Build the API application.

    Args:
        indexer: Indexer services
        admin_secret: Secret required by the reset route (None disables it)
        sync_interval: Normal sync interval reported in activity metadata

    Returns:
        aiohttp application
    """
    app = web.Application()
    app[INDEXER] = indexer
    app[ADMIN_SECRET] = admin_secret or ""
    app[SYNC_INTERVAL] = sync_interval
    app.add_routes(routes)
    return app


async def start_api_server(app: web.Application, host: str, port: int) -> web.AppRunner:
    """Start the API server and return its runner."""
    runner = web.AppRunner(app)
    await runner.setup()
    await web.TCPSite(runner, host, port).start()
    logger.info(f"API server started on {host}:{port}")
    return runner
