import pytest

from academic_bot.core.conversation import CallbackKind, parse_callback
from academic_bot.core.conversation.callbacks import (
    approve_source_data,
    filter_tag_data,
    fits_callback_data,
    mode_data,
    rate_data,
)
from academic_bot.core.conversation.keyboards import (
    get_history_keyboard,
    get_rating_keyboard,
    get_sources_keyboard,
)
from academic_bot.core.intake import extract_tags
from academic_bot.core.session.models import UserType

from conftest import make_source


class TestParseCallback:

    @pytest.mark.parametrize(
        "data,kind",
        [
            ("confirm", CallbackKind.CONFIRM),
            ("add_more", CallbackKind.ADD_MORE),
            ("approve_all", CallbackKind.APPROVE_ALL),
            ("generate_draft", CallbackKind.GENERATE_DRAFT),
            ("cancel_sources", CallbackKind.CANCEL_SOURCES),
            ("approve_draft", CallbackKind.APPROVE_DRAFT),
            ("download_files", CallbackKind.DOWNLOAD_FILES),
            ("new_request", CallbackKind.NEW_REQUEST),
        ],
    )
    def test_simple_kinds(self, data, kind):
        assert parse_callback(data).kind is kind

    def test_mode(self):
        callback = parse_callback(mode_data(UserType.TUTOR))
        assert callback.kind is CallbackKind.SELECT_MODE
        assert callback.user_type is UserType.TUTOR

    def test_guest_is_not_selectable(self):
        assert parse_callback("type_guest") is None

    def test_approve_source(self):
        callback = parse_callback(approve_source_data(3))
        assert callback.kind is CallbackKind.APPROVE_SOURCE
        assert callback.index == 3

    def test_rate(self):
        callback = parse_callback(rate_data("ab12cd34", 4))
        assert callback.kind is CallbackKind.RATE
        assert callback.draft_id == "ab12cd34"
        assert callback.rating == 4

    @pytest.mark.parametrize("data", ["rate_ab12_0", "rate_ab12_6", "rate__3"])
    def test_rate_out_of_range(self, data):
        assert parse_callback(data) is None

    def test_filter_tag(self):
        callback = parse_callback(filter_tag_data("biology"))
        assert callback.kind is CallbackKind.FILTER_TAG
        assert callback.tag == "biology"

    def test_filter_tag_non_latin(self):
        callback = parse_callback(filter_tag_data("экология"))
        assert callback.tag == "экология"

    @pytest.mark.parametrize("data", [None, "", "approve_source_x", "unknown"])
    def test_unknown(self, data):
        assert parse_callback(data) is None


class TestKeyboards:

    def test_sources_keyboard_marks_approved(self):
        sources = [make_source(1), make_source(2)]
        keyboard = get_sources_keyboard(sources, [sources[1]])

        assert keyboard[0][0].text.startswith("➕")
        assert keyboard[1][0].text.startswith("✅")
        assert keyboard[1][0].data == "approve_source_1"
        assert keyboard[-1][0].data == "generate_draft"

    def test_every_button_parses(self):
        keyboards = [
            get_sources_keyboard([make_source(1)], []),
            get_rating_keyboard("ab12cd34"),
            get_history_keyboard(["biology", "exam-prep"]),
        ]
        for keyboard in keyboards:
            for row in keyboard:
                for button in row:
                    assert parse_callback(button.data) is not None, button.data

    def test_history_keyboard_skips_oversized_tags(self):
        long_tag = extract_tags("Тема #климатическиеизмененияисельскоехозяйство")[0]
        assert not fits_callback_data(filter_tag_data(long_tag))

        keyboard = get_history_keyboard([long_tag, "экология"])

        data = [row[0].data for row in keyboard]
        assert data == [filter_tag_data("экология"), "new_request"]
        assert all(len(d.encode("utf-8")) <= 64 for d in data)

    def test_history_keyboard_limit(self):
        tags = [f"tag{i}" for i in range(7)]
        keyboard = get_history_keyboard(tags, limit=5)

        assert [row[0].text for row in keyboard[:-1]] == [f"#tag{i}" for i in range(5)]
