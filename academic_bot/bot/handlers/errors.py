"""
Last-resort error handler.

Per-chat errors are answered by the conversation controller; anything that
still escapes a handler is logged here so polling keeps running.
"""

import logging

from aiogram.types import ErrorEvent

logger = logging.getLogger(__name__)


async def handle_error(event: ErrorEvent) -> bool:
    logger.error(
        f"Unhandled error in update {event.update.update_id}: {event.exception}",
        exc_info=event.exception,
    )
    return True
