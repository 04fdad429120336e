"""
Academic Paper Bot - Main entry point.
"""

import asyncio
import logging
import sys

from aiohttp import web

from academic_bot.bot.bot import create_bot, create_dispatcher
from academic_bot.bot.handlers import register_handlers
from academic_bot.bot.transport import AiogramTransport
from academic_bot.config import Settings, get_settings
from academic_bot.core.conversation import ConversationController
from academic_bot.core.errors import ConfigurationError
from academic_bot.core.services import DefaultServices
from academic_bot.health import start_health_server
from academic_bot.history import HistoryStore, get_history_store


# Fix for Windows asyncio
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


logger = logging.getLogger(__name__)


async def main() -> None:
    """Main function to run the bot."""
    try:
        settings = get_settings()
    except ConfigurationError as e:
        logger.critical(str(e))
        sys.exit(1)

    logging.getLogger().setLevel(logging.DEBUG if settings.debug else logging.INFO)

    bot = create_bot(settings)
    dp = create_dispatcher()

    history: HistoryStore = get_history_store(settings)
    controller = ConversationController(
        transport=AiogramTransport(bot),
        services=DefaultServices(settings),
        history=history,
        settings=settings,
    )

    # Handlers receive the controller as a keyword argument
    dp["controller"] = controller
    register_handlers(dp)

    health_runner: web.AppRunner | None = None

    async def on_startup() -> None:
        """Initialize services on startup."""
        nonlocal health_runner
        logger.info("Starting Academic Paper Bot...")

        await history.init()
        logger.info(f"History store initialized ({history.name})")

        health_runner = await start_health(settings)

    async def on_shutdown() -> None:
        """Cleanup on shutdown."""
        logger.info("Shutting down Academic Paper Bot...")

        if health_runner is not None:
            await health_runner.cleanup()
        await history.close()

        logger.info("Cleanup complete")

    # Register startup/shutdown hooks
    dp.startup.register(on_startup)
    dp.shutdown.register(on_shutdown)

    # Start polling
    logger.info("Bot is starting...")
    try:
        await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())
    finally:
        await bot.session.close()


async def start_health(settings: Settings) -> web.AppRunner | None:
    try:
        return await start_health_server(settings)
    except OSError as e:
        # Polling still works without the health endpoint
        logger.error(f"Health server failed to start: {e}")
        return None


def run() -> None:
    """Console script entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(main())


if __name__ == "__main__":
    run()
