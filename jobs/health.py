"""
Health check server for the indexer process.

Reports scheduler state and sync freshness.
"""

import asyncio

from aiohttp import web
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from app.services.indexer import Indexer

# Registered at startup
_scheduler: AsyncIOScheduler | None = None
_indexer: Indexer | None = None


def set_scheduler(scheduler: AsyncIOScheduler) -> None:
    """
    Set the scheduler instance for health checks.

    Args:
        scheduler: AsyncIOScheduler instance to monitor
    """
    global _scheduler
    _scheduler = scheduler
    logger.info("Scheduler registered for health checks")


def set_indexer(indexer: Indexer) -> None:
    """Set the indexer whose sync state is reported."""
    global _indexer
    _indexer = indexer


def _sync_info() -> dict:
    if _indexer is None:
        return {}
    info = _indexer.event_sync.freshness()
    info["subscribers"] = _indexer.notifier.subscriber_count
    info["renderQueueProcessing"] = (
        _indexer.render_queue.is_processing if _indexer.render_queue else False
    )
    return info


async def health_handler(request: web.Request) -> web.Response:
    """
    Health check endpoint.

    Returns:
        JSON response with scheduler and sync status
    """
    if _scheduler is None:
        return web.json_response(
            {
                "status": "unhealthy",
                "error": "Scheduler not initialized",
            },
            status=503,
        )

    try:
        is_running = _scheduler.running
        jobs = _scheduler.get_jobs()
        job_info = [
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
            }
            for job in jobs
        ]

        return web.json_response(
            {
                "status": "healthy" if is_running else "stopped",
                "scheduler_running": is_running,
                "jobs_count": len(jobs),
                "jobs": job_info,
                "sync": _sync_info(),
            }
        )
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return web.json_response(
            {
                "status": "unhealthy",
                "error": str(e),
            },
            status=503,
        )


async def readiness_handler(request: web.Request) -> web.Response:
    """
    Readiness check endpoint.

    Ready once the scheduler runs and the indexer is wired.
    """
    if _scheduler is None or not _scheduler.running or _indexer is None:
        return web.json_response(
            {
                "status": "not_ready",
                "ready": False,
            },
            status=503,
        )

    return web.json_response(
        {
            "status": "ready",
            "ready": True,
        }
    )


async def liveness_handler(request: web.Request) -> web.Response:
    """Liveness check endpoint."""
    return web.json_response(
        {
            "status": "alive",
            "alive": True,
        }
    )


def create_health_app() -> web.Application:
    """Build the health check application."""
    app = web.Application()
    app.router.add_get("/health", health_handler)
    app.router.add_get("/readiness", readiness_handler)
    app.router.add_get("/liveness", liveness_handler)
    return app


async def start_health_server(
    host: str = "0.0.0.0",
    port: int = 8081,
) -> web.AppRunner:
    """
    Start health check server.

    Args:
        host: Host to bind to
        port: Port to bind to

    Returns:
        AppRunner for cleanup
    """
    runner = web.AppRunner(create_health_app())
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"Health check server started on {host}:{port}")
    return runner


async def stop_runner(
    runner: web.AppRunner,
    timeout: int = 5,
) -> None:
    """
    Stop an aiohttp runner gracefully.

    Args:
        runner: AppRunner to cleanup
        timeout: Maximum time to wait for cleanup in seconds
    """
    try:
        await asyncio.wait_for(runner.cleanup(), timeout=timeout)
    except TimeoutError:
        logger.warning(f"Server cleanup timed out after {timeout}s")
    except Exception as e:
        logger.error(f"Error stopping server: {e}")
