from aiogram import Dispatcher

from academic_bot.bot.handlers import register_handlers
from academic_bot.bot.transport import AiogramTransport, build_markup, resolve_file_url
from academic_bot.core.conversation.keyboards import get_intake_keyboard
from academic_bot.core.monitoring import monitor


class RecordingBot:
    token = "123:abc"

    def __init__(self):
        self.sent: list[dict] = []

    async def send_message(self, **kwargs):
        self.sent.append(kwargs)

    async def get_file(self, file_id):
        class File:
            file_path = f"photos/{file_id}.jpg"

        return File()


def test_build_markup_keeps_rows():
    markup = build_markup(get_intake_keyboard())

    assert [len(row) for row in markup.inline_keyboard] == [1, 2]
    assert markup.inline_keyboard[0][0].callback_data == "confirm"


def test_build_markup_without_keyboard():
    assert build_markup(None) is None
    assert build_markup([]) is None


async def test_send_message_is_counted():
    bot = RecordingBot()
    before = monitor.get_stats().calls["telegram"]

    await AiogramTransport(bot).send_message(1, "<b>hi</b>", get_intake_keyboard())

    assert bot.sent[0]["chat_id"] == 1
    assert bot.sent[0]["reply_markup"] is not None
    assert monitor.get_stats().calls["telegram"] == before + 1


async def test_resolve_file_url():
    url = await resolve_file_url(RecordingBot(), "f1")
    assert url == "https://api.telegram.org/file/bot123:abc/photos/f1.jpg"


def test_handlers_register():
    dp = Dispatcher()
    register_handlers(dp)

    assert [router.name for router in dp.sub_routers] == ["commands", "callbacks", "intake"]
