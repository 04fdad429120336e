"""
Health endpoint for external uptime monitoring.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from aiohttp import web

from academic_bot.config import Settings

logger = logging.getLogger(__name__)

BOT_NAME = "Academic Paper Assistant"


def build_health_status(settings: Settings) -> dict[str, Any]:
    """Liveness plus which optional integrations are configured."""
    return {
        "status": "OK",
        "bot": BOT_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "features": {
            "telegram": bool(settings.telegram_bot_token),
            "groq": bool(settings.groq_api_key),
            "eden_ai": bool(settings.eden_ai_key),
            "zotero": settings.zotero_configured,
            "google_sheets": settings.sheets_configured,
            "google_drive": settings.drive_configured,
        },
    }


def create_health_app(settings: Settings) -> web.Application:
    async def health(request: web.Request) -> web.Response:
        return web.json_response(build_health_status(settings))

    app = web.Application()
    app.router.add_get("/health", health)
    app.router.add_get("/status", health)
    return app


async def start_health_server(settings: Settings) -> web.AppRunner:
    """Start the health server in the running event loop."""
    runner = web.AppRunner(create_health_app(settings))
    await runner.setup()
    site = web.TCPSite(runner, settings.health_host, settings.health_port)
    await site.start()
    logger.info(f"Health server listening on {settings.health_host}:{settings.health_port}")
    return runner
