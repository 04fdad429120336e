import pytest

from academic_bot.core.errors import AdapterError
from academic_bot.core.session.models import SourceRecord
from academic_bot.core.sources import (
    deduplicate_sources,
    fallback_keywords,
    find_sources,
    parse_keywords,
    select_candidates,
)

from conftest import make_source


class TestDeduplicate:

    def test_doi_duplicates_keep_first(self):
        first = SourceRecord(title="A", doi="10.1/x")
        duplicate = SourceRecord(title="A (preprint)", doi="10.1/x")
        other = SourceRecord(title="B", doi="10.1/y")

        assert deduplicate_sources([first, duplicate, other]) == [first, other]

    def test_title_used_without_doi(self):
        first = SourceRecord(title="Same")
        duplicate = SourceRecord(title="Same")
        with_doi = SourceRecord(title="Same", doi="10.1/z")

        result = deduplicate_sources([first, duplicate, with_doi])
        assert result == [first, with_doi]

    def test_is_idempotent(self):
        sources = [make_source(1), make_source(1), make_source(2)]
        once = deduplicate_sources(sources)
        assert deduplicate_sources(once) == once


class TestKeywords:

    def test_json_array(self):
        content = 'Here you go: ["soil health", "crop yield"]'
        assert parse_keywords(content) == ["soil health", "crop yield"]

    def test_list_lines(self):
        content = "1. soil health\n- crop yield\n* \"drought\""
        assert parse_keywords(content) == ["soil health", "crop yield", "drought"]

    def test_limit(self):
        content = "\n".join(f"kw{i}" for i in range(20))
        assert len(parse_keywords(content)) == 10

    def test_fallback_contains_topic(self):
        keywords = fallback_keywords("AI ethics")
        assert keywords[0] == "AI ethics"
        assert len(keywords) == 4


class TestSelectCandidates:

    def test_requires_doi_and_year(self):
        sources = [
            make_source(1),
            make_source(2, year=2015),
            make_source(3, doi=None),
            SourceRecord(title="No year", doi="10.1/n"),
        ]
        assert select_candidates(sources) == [sources[0]]

    def test_only_first_page_considered(self):
        sources = [make_source(i) for i in range(15)]
        assert len(select_candidates(sources)) == 10


class TestFindSources:

    async def test_filters_and_imports(self, services):
        services.sources = [
            make_source(1),
            make_source(2, year=2018),  # too old
            make_source(3, doi=None),  # no DOI
            make_source(4),
            make_source(1),  # duplicate DOI
        ]
        services.invalid_dois = {"10.1000/paper.4"}

        result = await find_sources(services, "Topic", ["Earlier topic"])

        assert [s.title for s in result] == ["Paper 1"]
        assert result[0].external_citation_key == "KEY1"
        assert services.prior_topics == [["Earlier topic"]]
        assert services.calls["import_citation"] == 1

    async def test_every_result_is_valid_and_unique(self, services):
        services.sources = [make_source(i % 3) for i in range(9)]

        result = await find_sources(services, "Topic")

        dois = [s.doi for s in result]
        assert len(dois) == len(set(dois))
        assert all(s.doi and s.year >= 2020 for s in result)

    async def test_search_failure_propagates(self, services):
        services.search_error = AdapterError("semantic_scholar", "down")

        with pytest.raises(AdapterError):
            await find_sources(services, "Topic")

    async def test_nothing_found(self, services):
        services.sources = []
        assert await find_sources(services, "Topic") == []
