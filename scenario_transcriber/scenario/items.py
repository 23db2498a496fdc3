"""
Per-item stage of the scenario pipeline.

For one entry of the item index this module locates the item descriptor,
normalizes and transcribes the referenced recording, and turns the outcome
into a report section. Failures inside an item never propagate: they collapse
into one of the sentinel transcripts below so the item still gets a section.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from ..engines import AudioNormalizer, WhisperTranscriber, normalized_path_for, transcript_path_for
from .descriptors import locate_item_descriptor, parse_item_descriptor
from .report import ReportSection

logger = logging.getLogger(__name__)

TRANSCRIPTION_FAILED = "[TRANSCRIPTION ERROR]"
AUDIO_MISSING = "[TRANSCRIPTION ERROR] (audio file not found)"


@dataclass
class RecordedItem:
    """State of one recording while it moves through the pipeline."""

    index: int
    descriptor_path: Optional[Path] = None
    audio_source_path: Optional[Path] = None
    normalized_audio_path: Optional[Path] = None
    transcript_path: Optional[Path] = None
    transcript_text: str = TRANSCRIPTION_FAILED
    start_time: Optional[str] = None
    metadata_fields: Dict[str, str] = field(default_factory=dict)

    @property
    def label(self) -> str:
        return f"Item{self.index}"

    def to_section(self) -> ReportSection:
        return ReportSection(
            label=self.label,
            transcript=self.transcript_text,
            start_time=self.start_time,
            stop_time=self.metadata_fields.get("Stop_Time"),
            alias=self.metadata_fields.get("IndividualAlias"),
            unit_id=self.metadata_fields.get("UnitID"),
        )


def read_transcript(path: Optional[Path]) -> str:
    """Read a transcript file; missing, unreadable or blank files give the failure sentinel."""
    if path is None:
        return TRANSCRIPTION_FAILED
    try:
        text = path.read_text(encoding="utf-8", errors="replace").strip()
    except OSError as e:
        logger.warning(f"Could not read transcript {path.name}: {e}")
        return TRANSCRIPTION_FAILED
    return text or TRANSCRIPTION_FAILED


class ItemProcessor:
    """Runs the normalize/transcribe/read-back sequence for single items."""

    def __init__(self, normalizer: AudioNormalizer, transcriber: WhisperTranscriber):
        self.normalizer = normalizer
        self.transcriber = transcriber

    def process(self, items_dir: Path, index: int) -> Optional[RecordedItem]:
        """
        Process item ``index`` (1-based) of the index found in ``items_dir``.

        Returns:
            The processed item, or None when its descriptor cannot be found
        """
        item = RecordedItem(index=index, descriptor_path=locate_item_descriptor(items_dir, index))
        if item.descriptor_path is None:
            logger.warning(f"Skipping {item.label}: no descriptor found")
            return None

        start_time = time.time()
        try:
            self._process_descriptor(item)
        except Exception as e:
            logger.error(f"{item.label} failed: {e}")
            item.transcript_text = TRANSCRIPTION_FAILED

        logger.info(f"{item.label} done in {time.time() - start_time:.2f}s")
        return item

    def _process_descriptor(self, item: RecordedItem) -> None:
        descriptor = parse_item_descriptor(item.descriptor_path)
        item.start_time = descriptor.start_time
        item.metadata_fields = dict(descriptor.fields)

        item_dir = item.descriptor_path.parent
        if descriptor.wave_file_name:
            item.audio_source_path = item_dir / descriptor.wave_file_name

        if item.audio_source_path is None or not item.audio_source_path.is_file():
            logger.warning(f"{item.label}: audio file not found ({descriptor.wave_file_name or 'no name'})")
            item.transcript_text = AUDIO_MISSING
            return

        item.transcript_text = self._transcribe(item, item.audio_source_path, item_dir)

    def _transcribe(self, item: RecordedItem, source: Path, item_dir: Path) -> str:
        normalized_transcript = transcript_path_for(normalized_path_for(source), item_dir)
        source_transcript = transcript_path_for(source, item_dir)

        if normalized_transcript.exists() or source_transcript.exists():
            logger.info(f"{item.label}: transcript already present, skipping normalization and whisper")
        else:
            self._run_engines(item, source, item_dir)

        # The normalized-audio transcript takes precedence over the source one
        item.transcript_path = normalized_transcript if normalized_transcript.exists() else source_transcript
        return read_transcript(item.transcript_path)

    def _run_engines(self, item: RecordedItem, source: Path, item_dir: Path) -> None:
        normalized = self.normalizer.normalize(source)
        if normalized is None:
            logger.warning(f"{item.label}: normalization failed, transcribing the original file")
        audio = normalized or source
        item.normalized_audio_path = audio

        try:
            result = self.transcriber.transcribe(audio, item_dir)
            if not result.ok:
                transcript_path_for(audio, item_dir).write_text(TRANSCRIPTION_FAILED, encoding="utf-8")
        finally:
            if audio != source:
                audio.unlink(missing_ok=True)
