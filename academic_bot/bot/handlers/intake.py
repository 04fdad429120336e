"""
Free-text, photo and voice message handlers.
"""

import logging

from aiogram import F, Router
from aiogram.enums import ChatAction
from aiogram.types import Message

from academic_bot.bot.transport import resolve_file_url
from academic_bot.core.conversation import ConversationController

router = Router(name="intake")
logger = logging.getLogger(__name__)


@router.message(F.text)
async def handle_text(message: Message, controller: ConversationController) -> None:
    """Handle free text: request fragments, revision requests and comments."""
    await message.bot.send_chat_action(chat_id=message.chat.id, action=ChatAction.TYPING)
    await controller.handle_text(message.chat.id, message.text)


@router.message(F.photo)
async def handle_photo(message: Message, controller: ConversationController) -> None:
    """Handle a photo of the assignment."""
    # Largest available size gives the best OCR result
    url = await resolve_file_url(message.bot, message.photo[-1].file_id)
    logger.debug(f"Photo from chat {message.chat.id}")
    await controller.handle_photo(message.chat.id, url)

    if message.caption:
        await controller.handle_text(message.chat.id, message.caption)


@router.message(F.voice)
async def handle_voice(message: Message, controller: ConversationController) -> None:
    """Handle a voice note describing the assignment."""
    url = await resolve_file_url(message.bot, message.voice.file_id)
    logger.debug(f"Voice note from chat {message.chat.id}")
    await controller.handle_voice(message.chat.id, url)
