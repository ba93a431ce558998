"""
Health check server.

aiohttp endpoints for container probes:
- /liveness: the process answers
- /readiness: gateway connected and scheduler running
- /health: readiness plus job and affiliate state details
"""

import asyncio
from typing import Any

import discord
from aiohttp import web
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

# Registered by the bot at startup
_scheduler: AsyncIOScheduler | None = None
_client: discord.Client | None = None


def set_scheduler(scheduler: AsyncIOScheduler | None) -> None:
    """Register the running scheduler."""
    global _scheduler
    _scheduler = scheduler
    logger.info("Scheduler registered for health checks")


def set_client(client: discord.Client | None) -> None:
    """Register the Discord client."""
    global _client
    _client = client


def _gateway_connected() -> bool:
    return _client is not None and _client.is_ready() and not _client.is_closed()


def _scheduler_running() -> bool:
    return _scheduler is not None and _scheduler.running


def _affiliate_state() -> dict[str, Any]:
    services = getattr(_client, "services", None)
    if services is None:
        return {}

    rollover = services.rollover
    return {
        "tracked_guilds": len(services.tracked_guild_ids(_client)),
        "leaderboards_enabled": rollover is not None,
        "leaderboard_month": rollover.current_month if rollover else None,
    }


def _jobs() -> list[dict[str, Any]]:
    if _scheduler is None:
        return []
    return [
        {
            "id": job.id,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
        }
        for job in _scheduler.get_jobs()
    ]


async def health_handler(request: web.Request) -> web.Response:
    """Detailed status; 503 until the bot is ready."""
    ready = _gateway_connected() and _scheduler_running()
    body = {
        "status": "healthy" if ready else "unhealthy",
        "discord_connected": _gateway_connected(),
        "scheduler_running": _scheduler_running(),
        "jobs": _jobs(),
        **_affiliate_state(),
    }
    return web.json_response(body, status=200 if ready else 503)


async def readiness_handler(request: web.Request) -> web.Response:
    ready = _gateway_connected() and _scheduler_running()
    return web.json_response(
        {"status": "ready" if ready else "not_ready", "ready": ready},
        status=200 if ready else 503,
    )


async def liveness_handler(request: web.Request) -> web.Response:
    return web.json_response({"status": "alive", "alive": True})


def create_health_app() -> web.Application:
    """Application with the probe routes."""
    app = web.Application()
    app.router.add_get("/health", health_handler)
    app.router.add_get("/readiness", readiness_handler)
    app.router.add_get("/liveness", liveness_handler)
    return app


async def start_health_server(
    host: str = "0.0.0.0",
    port: int = 8080,
) -> web.AppRunner:
    """
    Start the probe server.

    Args:
        host: Bind address
        port: Bind port

    Returns:
        AppRunner to pass to stop_health_server()
    """
    runner = web.AppRunner(create_health_app())
    await runner.setup()
    await web.TCPSite(runner, host, port).start()
    logger.info(f"Health check server listening on {host}:{port}")
    return runner


async def stop_health_server(runner: web.AppRunner, timeout: float = 5) -> None:
    """Stop the probe server, giving up after timeout seconds."""
    try:
        await asyncio.wait_for(runner.cleanup(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Health check server cleanup timed out after {timeout}s")
        return
    logger.info("Health check server stopped")
