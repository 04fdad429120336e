"""
Inline button handler.
"""

from aiogram import Router
from aiogram.types import CallbackQuery

from academic_bot.core.conversation import ConversationController

router = Router(name="callbacks")


@router.callback_query()
async def handle_callback(callback: CallbackQuery, controller: ConversationController) -> None:
    """Acknowledge the button press and pass its data to the controller."""
    await callback.answer()
    if callback.message is None:
        return
    await controller.handle_callback(callback.message.chat.id, callback.data)
