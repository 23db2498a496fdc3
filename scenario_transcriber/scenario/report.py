"""
DOCX report assembly.

Each processed item contributes one section: a bold header block with the item
label, start/stop time, alias and unit id, followed by the transcript one
paragraph per line. If the full document cannot be serialized a one-paragraph
fallback document is produced instead.
"""

import io
import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from docx import Document
from docx.shared import Pt

logger = logging.getLogger(__name__)

PLACEHOLDER = "-"
SEPARATOR = "─" * 44
FALLBACK_TEXT = "Transcription generated partially."

# Control characters python-docx refuses to serialize
XML_INVALID_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


def xml_safe(text: str) -> str:
    return XML_INVALID_CHARS.sub("", text)


@dataclass
class ReportSection:
    """Report content for one recorded item."""

    label: str
    transcript: str
    start_time: Optional[str] = None
    stop_time: Optional[str] = None
    alias: Optional[str] = None
    unit_id: Optional[str] = None

    def header_lines(self) -> List[str]:
        lines = [
            f"Item: {self.label}",
            f"Start: {self.start_time or PLACEHOLDER}",
            f"End: {self.stop_time or PLACEHOLDER}",
            f"Alias: {self.alias or PLACEHOLDER}",
            f"ID: {self.unit_id or PLACEHOLDER}",
        ]
        return [xml_safe(line) for line in lines]

    def transcript_lines(self) -> List[str]:
        return [xml_safe(line).strip() for line in self.transcript.splitlines()] or [""]


def _to_bytes(document) -> bytes:
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def render_fallback() -> bytes:
    """Minimal document stating that the transcription is partial."""
    document = Document()
    document.add_paragraph(FALLBACK_TEXT)
    return _to_bytes(document)


class ReportBuilder:
    """Accumulates report sections and serializes them into a DOCX file."""

    def __init__(self):
        self.sections: List[ReportSection] = []

    def __len__(self) -> int:
        return len(self.sections)

    def add_section(self, section: ReportSection) -> None:
        self.sections.append(section)

    def render(self) -> bytes:
        """Serialize all sections; raises if python-docx fails."""
        document = Document()
        for section in self.sections:
            for line in section.header_lines():
                document.add_paragraph().add_run(line).bold = True
            document.add_paragraph("Transcript:")
            for line in section.transcript_lines():
                document.add_paragraph().add_run(line).font.size = Pt(12)
            document.add_paragraph(SEPARATOR)
        return _to_bytes(document)

    def build(self) -> bytes:
        """
        Serialize the report, degrading to the fallback document on failure.

        Returns:
            DOCX file content
        """
        try:
            return self.render()
        except Exception as e:
            logger.error(f"Report serialization failed, writing fallback document: {e}")
            return render_fallback()
