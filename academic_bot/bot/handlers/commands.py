"""
Command handlers.
"""

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from academic_bot.core.conversation import ConversationController

router = Router(name="commands")

COMMANDS = (
    "start",
    "help",
    "status",
    "sources",
    "revise",
    "report",
    "files",
    "history",
    "cancel",
    "adminreport",
)


@router.message(Command(*COMMANDS))
async def handle_command(
    message: Message, command: CommandObject, controller: ConversationController
) -> None:
    """Hand every known command to the controller."""
    await controller.handle_command(message.chat.id, command.command)


@router.message(F.text.startswith("/"))
async def handle_unknown_command(
    message: Message, controller: ConversationController
) -> None:
    name = message.text[1:].split(maxsplit=1)[0].split("@", 1)[0] if len(message.text) > 1 else ""
    await controller.handle_command(message.chat.id, name)
