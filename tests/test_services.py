import pytest

from academic_bot.core.errors import AdapterError
from academic_bot.core.services import DefaultServices
from academic_bot.core.session.models import CitationFormat
from academic_bot.integrations.eden import EdenAIClient, normalize_score
from academic_bot.integrations.llm import BaseLLM, LLMResponse
from academic_bot.integrations.scholar import parse_paper
from academic_bot.integrations.zotero import ZoteroClient, fallback_citation

from conftest import make_source


class StubLLM(BaseLLM):
    """Returns canned answers and records prompts."""

    def __init__(self, content: str = "", error: Exception | None = None):
        self.content = content
        self.error = error
        self.requests: list[dict] = []

    async def generate(self, prompt, system_prompt=None, temperature=0.3, max_tokens=1024, timeout=None):
        self.requests.append(
            {"prompt": prompt, "temperature": temperature, "max_tokens": max_tokens}
        )
        if self.error is not None:
            raise self.error
        return LLMResponse(content=self.content)

    @property
    def name(self) -> str:
        return "stub"


class TestDefaultServices:

    async def test_keywords_from_llm(self, settings):
        llm = StubLLM('["soil", "erosion"]')
        services = DefaultServices(settings, llm=llm)

        keywords = await services.generate_keywords("Soil erosion", ["Earlier topic"])

        assert keywords == ["soil", "erosion"]
        assert "Earlier topic" in llm.requests[0]["prompt"]

    async def test_keywords_fall_back_when_llm_fails(self, settings):
        services = DefaultServices(settings, llm=StubLLM(error=AdapterError("groq", "down")))

        keywords = await services.generate_keywords("Soil erosion", [])
        assert keywords[0] == "Soil erosion"

    async def test_draft_token_budget(self, settings):
        llm = StubLLM("Draft text")
        services = DefaultServices(settings, llm=llm)

        await services.generate_draft("Topic", [make_source(1)], CitationFormat.APA, 3)
        assert llm.requests[-1]["max_tokens"] == 1500
        assert llm.requests[-1]["temperature"] == 0.7

        await services.generate_draft("Topic", [make_source(1)], CitationFormat.APA, 40)
        assert llm.requests[-1]["max_tokens"] == 8000

    async def test_empty_draft_is_an_error(self, settings):
        services = DefaultServices(settings, llm=StubLLM("   "))

        with pytest.raises(AdapterError):
            await services.generate_draft("Topic", [], CitationFormat.APA, 1)

    async def test_build_document_writes_docx(self, settings):
        services = DefaultServices(settings, llm=StubLLM())

        document = await services.build_document(
            "# Introduction\n\nBody text.\n- point", "Ref 1", "Soil / erosion?"
        )

        assert document.path.exists()
        assert document.path.parent == settings.drafts_dir
        assert document.filename.startswith("Soil_erosion_")
        assert document.filename.endswith(".docx")

    async def test_unconfigured_integrations_degrade(self, settings):
        services = DefaultServices(settings, llm=StubLLM())
        source = make_source(1)

        assert await services.upload_document(settings.data_dir / "x.docx", "42") is None
        assert await services.import_citation(source) is None
        assert await services.format_bibliography([source], CitationFormat.APA) == fallback_citation(source)


class TestEdenAI:

    async def test_unconfigured_client(self, settings):
        client = EdenAIClient(settings)

        assert not client.configured
        assert await client.perform_ocr("https://files/photo.jpg") is None
        assert await client.transcribe("https://files/voice.ogg") is None
        assert await client.check_plagiarism("text") == 0.0

    @pytest.mark.parametrize(
        "raw,expected",
        [(0.12, 0.12), (12, 0.12), (100, 1.0), (-1, 0.0), (250, 1.0)],
    )
    def test_normalize_score(self, raw, expected):
        assert normalize_score(raw) == pytest.approx(expected)


class TestScholar:

    def test_parse_paper(self):
        source = parse_paper(
            {
                "title": " Soil health ",
                "authors": [{"name": "A. Author"}, {"name": None}],
                "year": 2022,
                "externalIds": {"DOI": "10.1/x"},
                "openAccessPdf": {"url": "https://pdf.example/x.pdf"},
            }
        )

        assert source.title == "Soil health"
        assert source.doi == "10.1/x"
        assert source.authors == ["A. Author"]
        assert source.url == "https://pdf.example/x.pdf"

    def test_parse_paper_without_ids(self):
        source = parse_paper({"title": "T", "externalIds": None, "openAccessPdf": None})
        assert source.doi is None
        assert source.url is None


class TestZotero:

    async def test_bibliography_falls_back_per_source(self, settings):
        client = ZoteroClient(settings)
        sources = [make_source(1), make_source(2)]

        bibliography = await client.format_bibliography(sources, CitationFormat.MLA)

        assert bibliography.splitlines() == [fallback_citation(s) for s in sources]


class TestLLMBase:

    def test_messages_with_system_prompt(self):
        messages = BaseLLM.build_messages("Write", system_prompt="You are an editor")
        assert [m["role"] for m in messages] == ["system", "user"]
        assert messages[-1]["content"] == "Write"

    def test_messages_without_system_prompt(self):
        assert BaseLLM.build_messages("Write") == [{"role": "user", "content": "Write"}]

    def test_truncated_response(self):
        assert LLMResponse(content="abc", finish_reason="length").truncated
        assert not LLMResponse(content="abc", finish_reason="stop").truncated

    async def test_truncated_draft_is_still_returned(self, settings, caplog):
        class TruncatingLLM(StubLLM):
            async def generate(self, *args, **kwargs):
                await super().generate(*args, **kwargs)
                return LLMResponse(content="Half a draft", finish_reason="length")

        services = DefaultServices(settings, llm=TruncatingLLM())

        content = await services.generate_draft("Topic", [make_source(1)], CitationFormat.APA, 2)

        assert content == "Half a draft"
        assert "cut off" in caplog.text
