"""
Build Word documents from generated drafts.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt

logger = logging.getLogger(__name__)

HEADING_PATTERN = re.compile(r'^(#{1,6})\s+(.*)$')
EMPHASIS_PATTERN = re.compile(r'(\*\*|__|\*|_)(.+?)\1')
UNSAFE_FILENAME_CHARS = re.compile(r'[^a-zA-Z0-9]+')


@dataclass
class DocumentFile:
    """Document written to disk."""
    filename: str
    path: Path


def safe_filename(topic: str, max_length: int = 50) -> str:
    slug = UNSAFE_FILENAME_CHARS.sub("_", topic).strip("_")[:max_length]
    return slug or "draft"


def _plain(text: str) -> str:
    """Strip inline Markdown emphasis."""
    return EMPHASIS_PATTERN.sub(r"\2", text).strip()


def build_document(
    text: str,
    bibliography: str,
    topic: str,
    output_dir: Path,
) -> DocumentFile:
    """
    Write the draft as a .docx file.

    Markdown headings become Word headings, other lines become paragraphs.
    The bibliography is appended under a "References" heading.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filename = f"{safe_filename(topic)}_{timestamp}.docx"
    path = output_dir / filename

    doc = Document()
    style = doc.styles["Normal"]
    style.font.name = "Times New Roman"
    style.font.size = Pt(12)

    title = doc.add_heading(_plain(topic.splitlines()[0] if topic else "Draft"), level=0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER

    for line in text.splitlines():
        line = line.rstrip()
        if not line.strip():
            continue
        match = HEADING_PATTERN.match(line)
        if match:
            level = min(len(match.group(1)), 3)
            doc.add_heading(_plain(match.group(2)), level=level)
        elif line.lstrip().startswith(("- ", "* ")):
            doc.add_paragraph(_plain(line.lstrip()[2:]), style="List Bullet")
        else:
            doc.add_paragraph(_plain(line))

    if bibliography.strip():
        doc.add_heading("References", level=1)
        for entry in bibliography.splitlines():
            if entry.strip():
                doc.add_paragraph(entry.strip())

    doc.save(str(path))
    logger.info(f"Document saved: {path}")

    return DocumentFile(filename=filename, path=path)
