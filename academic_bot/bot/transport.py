"""
aiogram implementation of the chat transport.
"""

import logging
from pathlib import Path
from typing import Optional

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.types import (
    FSInputFile,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    LinkPreviewOptions,
)
from aiogram.utils.keyboard import InlineKeyboardBuilder

from academic_bot.core.conversation.keyboards import Keyboard
from academic_bot.core.monitoring import monitor

logger = logging.getLogger(__name__)

TELEGRAM_FILE_URL = "https://api.telegram.org/file/bot{token}/{path}"


def build_markup(keyboard: Optional[Keyboard]) -> Optional[InlineKeyboardMarkup]:
    """Render keyboard rows as an inline keyboard."""
    if not keyboard:
        return None
    builder = InlineKeyboardBuilder()
    for row in keyboard:
        builder.row(
            *[InlineKeyboardButton(text=b.text, callback_data=b.data) for b in row]
        )
    return builder.as_markup()


async def resolve_file_url(bot: Bot, file_id: str) -> str:
    """Download URL of a file sent to the bot."""
    file = await bot.get_file(file_id)
    return TELEGRAM_FILE_URL.format(token=bot.token, path=file.file_path)


class AiogramTransport:
    """Sends controller replies through the Bot API."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def send_message(
        self, chat_id: int, text: str, keyboard: Optional[Keyboard] = None
    ) -> None:
        try:
            await self.bot.send_message(
                chat_id=chat_id,
                text=text,
                reply_markup=build_markup(keyboard),
                link_preview_options=LinkPreviewOptions(is_disabled=True),
            )
        except TelegramAPIError as e:
            monitor.log_call("telegram", success=False, error=str(e))
            raise
        monitor.log_call("telegram")

    async def send_document(
        self, chat_id: int, path: Path, caption: Optional[str] = None
    ) -> None:
        try:
            await self.bot.send_document(
                chat_id=chat_id,
                document=FSInputFile(path, filename=path.name),
                caption=caption,
            )
        except TelegramAPIError as e:
            monitor.log_call("telegram", success=False, error=str(e))
            raise
        monitor.log_call("telegram")
