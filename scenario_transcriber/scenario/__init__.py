"""
Scenario export handling: archive extraction, descriptor reading, per-item
processing and DOCX report assembly.
"""

from .archive import extract_archive, find_file_recursive
from .descriptors import (
    METADATA_FIELDS,
    ItemDescriptor,
    count_index_items,
    locate_item_descriptor,
    parse_item_descriptor,
    resolve_items_index,
)
from .items import AUDIO_MISSING, TRANSCRIPTION_FAILED, ItemProcessor, RecordedItem
from .report import ReportBuilder, ReportSection

__all__ = [
    "AUDIO_MISSING",
    "METADATA_FIELDS",
    "TRANSCRIPTION_FAILED",
    "ItemDescriptor",
    "ItemProcessor",
    "RecordedItem",
    "ReportBuilder",
    "ReportSection",
    "count_index_items",
    "extract_archive",
    "find_file_recursive",
    "locate_item_descriptor",
    "parse_item_descriptor",
    "resolve_items_index",
]
