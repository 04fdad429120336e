"""
Bot handlers registration.
"""

from aiogram import Dispatcher

from academic_bot.bot.handlers.callbacks import router as callbacks_router
from academic_bot.bot.handlers.commands import router as commands_router
from academic_bot.bot.handlers.errors import handle_error
from academic_bot.bot.handlers.intake import router as intake_router


def register_handlers(dp: Dispatcher) -> None:
    """Register all handlers to dispatcher."""
    # Order matters! Commands must be matched before free text
    dp.include_router(commands_router)
    dp.include_router(callbacks_router)
    dp.include_router(intake_router)

    dp.errors.register(handle_error)
