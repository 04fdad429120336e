"""
Conversation flow: controller, callback parsing, keyboards and replies.
"""

from academic_bot.core.conversation.callbacks import Callback, CallbackKind, parse_callback
from academic_bot.core.conversation.controller import ConversationController
from academic_bot.core.conversation.keyboards import Button, Keyboard
from academic_bot.core.conversation.transport import ChatTransport

__all__ = [
    "Button",
    "Callback",
    "CallbackKind",
    "ChatTransport",
    "ConversationController",
    "Keyboard",
    "parse_callback",
]
