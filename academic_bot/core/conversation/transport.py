"""
Outbound chat transport interface used by the conversation controller.
"""

from pathlib import Path
from typing import Optional, Protocol

from academic_bot.core.conversation.keyboards import Keyboard


class ChatTransport(Protocol):
    """Sends replies to a chat. Messages are HTML formatted."""

    async def send_message(
        self, chat_id: int, text: str, keyboard: Optional[Keyboard] = None
    ) -> None:
        ...

    async def send_document(
        self, chat_id: int, path: Path, caption: Optional[str] = None
    ) -> None:
        ...
