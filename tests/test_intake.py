from datetime import date, timedelta

import pytest

from academic_bot.core.errors import SchemaValidationError
from academic_bot.core.intake import (
    build_intake,
    detect_deadline,
    detect_format,
    detect_length,
    extract_tags,
    is_overdue,
    strip_tags,
)
from academic_bot.core.session.models import CitationFormat, UserType
from academic_bot.core.validation import validate_data


class TestDetection:

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Use apa style", "APA"),
            ("MLA please", "MLA"),
            ("chicago format", "Chicago"),
            ("no format here", None),
        ],
    )
    def test_detect_format(self, text, expected):
        assert detect_format(text) == expected

    def test_detect_length(self):
        assert detect_length("about 10 pages") == 10
        assert detect_length("a 3-page essay") == 3
        assert detect_length("no length") is None

    def test_detect_deadline(self):
        assert detect_deadline("due 2030-05-01 at noon") == "2030-05-01"
        assert detect_deadline("due tomorrow") is None

    def test_tags(self):
        text = "Essay on soil #Biology #ecology #biology"
        assert extract_tags(text) == ["biology", "ecology"]
        assert strip_tags(text) == "Essay on soil"


class TestBuildIntake:

    def test_fragments_are_combined(self):
        request = build_intake(
            ["Climate change and crops #agri", "10 pages, MLA", "due 2030-01-15"],
            UserType.STUDENT,
        )

        assert "Climate change and crops" in request.topic
        assert request.format == CitationFormat.MLA
        assert request.length == 10
        assert request.deadline == date(2030, 1, 15)
        assert request.tags == ["agri"]
        assert request.user_type == UserType.STUDENT
        assert request.title == "Climate change and crops"

    def test_defaults(self):
        request = build_intake(["Photosynthesis"], UserType.GUEST)

        assert request.format == CitationFormat.APA
        assert request.length == 5
        assert request.deadline is None

    def test_tags_only_is_invalid(self):
        with pytest.raises(SchemaValidationError) as exc_info:
            build_intake(["#biology"], UserType.STUDENT)
        assert any("topic" in error for error in exc_info.value.errors)

    def test_length_out_of_range(self):
        with pytest.raises(SchemaValidationError) as exc_info:
            build_intake(["Topic, 500 pages"], UserType.STUDENT)
        assert any("length" in error for error in exc_info.value.errors)

    def test_invalid_date(self):
        with pytest.raises(SchemaValidationError) as exc_info:
            build_intake(["Topic due 2030-13-45"], UserType.STUDENT)
        assert any("deadline" in error for error in exc_info.value.errors)

    def test_overdue(self):
        past = (date.today() - timedelta(days=3)).isoformat()
        request = build_intake([f"Topic due {past}"], UserType.STUDENT)
        assert is_overdue(request)

        request = build_intake(["Topic"], UserType.STUDENT)
        assert not is_overdue(request)


class TestValidation:

    def test_unknown_kind(self):
        result = validate_data("order", {})
        assert not result.is_valid
        assert "Unknown validation type" in result.errors[0]

    def test_source_requires_doi_and_recent_year(self):
        result = validate_data("source", {"title": "Old", "doi": "10.1/x", "year": 2015})
        assert not result.is_valid
        assert result.errors[0].startswith("year")

        result = validate_data("source", {"title": "No DOI", "year": 2022})
        assert not result.is_valid

        result = validate_data("source", {"title": "Good", "doi": "10.1/x", "year": 2022})
        assert result.is_valid

    def test_source_url_must_be_http(self):
        result = validate_data(
            "source", {"title": "T", "doi": "10.1/x", "url": "ftp://host/file"}
        )
        assert not result.is_valid

    def test_draft_score_range(self):
        result = validate_data(
            "draft", {"topic": "T", "content": "Body", "plagiarism_score": 1.5}
        )
        assert not result.is_valid

        result = validate_data(
            "draft", {"topic": "T", "content": "Body", "plagiarism_score": 0.02}
        )
        assert result.is_valid
