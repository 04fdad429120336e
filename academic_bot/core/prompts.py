"""
Prompts for keyword extraction, drafting and revision suggestions.
"""

KEYWORDS_PROMPT = """Generate 10 academic search keywords for "{topic}".
{history}
Return the keywords as a JSON array of strings and nothing else."""

DRAFT_SYSTEM_PROMPT = """You are an experienced academic writer.
You write well-structured, original academic papers with accurate in-text citations.
You only cite the sources you are given."""

DRAFT_PROMPT = """Write a {length}-page {format} academic paper on "{topic}".

Sources to cite:
{sources}

Requirements:
- Use proper {format} format
- Include in-text citations like [1], [2]
- Create clear sections: Introduction, Literature Review, Analysis, Conclusion
- Be academic and scholarly
- Output in Markdown format
- Minimum {min_words} words"""

REVISION_NOTES_TEMPLATE = """

Revise the previous draft according to these notes:
{notes}"""

REVISION_SYSTEM_PROMPT = """You are an academic writing tutor.
Given a draft and a student's revision request, propose concrete, actionable changes.
Keep the answer short: a numbered list of at most five changes."""

REVISION_PROMPT = """Draft topic: {topic}

Draft excerpt:
{excerpt}

Revision request: {request}

Suggested changes:"""

# Annotation added to the topic when a draft fails the plagiarism check
ORIGINALITY_NOTE = " (needs more originality)"

WORDS_PER_PAGE = 250
TOKENS_PER_PAGE = 500
MAX_DRAFT_TOKENS = 8000


def format_history_topics(prior_topics: list[str]) -> str:
    """History hint for the keyword prompt."""
    if not prior_topics:
        return ""
    return "Previous searches: " + ", ".join(prior_topics)


def format_source_list(sources: list) -> str:
    """Numbered source list for the draft prompt."""
    if not sources:
        return "No sources provided."
    return "\n".join(
        f"[{i}] {source.title} (DOI: {source.doi})"
        for i, source in enumerate(sources, start=1)
    )


def build_draft_prompt(
    topic: str,
    sources: list,
    citation_format: str,
    length: int,
    revision_notes: str | None = None,
) -> str:
    prompt = DRAFT_PROMPT.format(
        length=length,
        format=citation_format,
        topic=topic,
        sources=format_source_list(sources),
        min_words=length * WORDS_PER_PAGE,
    )
    if revision_notes:
        prompt += REVISION_NOTES_TEMPLATE.format(notes=revision_notes)
    return prompt
