"""
Scenario processing pipeline.

Drives one uploaded archive through all stages: extraction, scenario and
index resolution, the per-item transcription loop, report assembly and
cleanup. Extraction and descriptor resolution failures are fatal and fail the
job; per-item failures only degrade that item's report section; a report
serialization failure degrades to a minimal document.

Progress bands: 0-20 setup, 20-80 items (linear in items done), 80-100
assembly and cleanup.
"""

import logging
import math
import time
from functools import partial
from pathlib import Path

from ..config import Settings
from ..engines import AudioNormalizer, WhisperTranscriber
from ..scenario import (
    ItemProcessor,
    ReportBuilder,
    count_index_items,
    extract_archive,
    find_file_recursive,
    resolve_items_index,
)
from ..scenario.descriptors import SCENARIO_FILE_NAMES
from .job_storage import JobStorage
from .models import JobResult, JobRunnable, ProgressUpdate

logger = logging.getLogger(__name__)

PROGRESS_STARTED = 5
PROGRESS_EXTRACTED = 15
PROGRESS_ITEMS_START = 20
PROGRESS_ITEMS_END = 80
PROGRESS_ASSEMBLING = 90
PROGRESS_CLEANED_UP = 99

COMPLETION_MESSAGE = "Scenario fully transcribed"


def item_progress(items_done: int, total_items: int) -> int:
    """Progress value after ``items_done`` of ``total_items`` items."""
    if total_items <= 0:
        return PROGRESS_ITEMS_START
    fraction = min(items_done, total_items) / total_items
    return math.floor(PROGRESS_ITEMS_START + (PROGRESS_ITEMS_END - PROGRESS_ITEMS_START) * fraction)


class ScenarioProcessor:
    """Handles the actual processing of scenario archives."""

    def __init__(self, storage: JobStorage, normalizer: AudioNormalizer, transcriber: WhisperTranscriber):
        """
        Initialize the processor.

        Args:
            storage: JobStorage providing job directories and public paths
            normalizer: Audio normalizer used before transcription
            transcriber: Transcription engine
        """
        self.storage = storage
        self.items = ItemProcessor(normalizer, transcriber)

    @classmethod
    def from_settings(cls, settings: Settings, storage: JobStorage) -> "ScenarioProcessor":
        normalizer = AudioNormalizer(settings.ffmpeg_bin, timeout=settings.ffmpeg_timeout)
        transcriber = WhisperTranscriber(
            whisper_bin=settings.whisper_bin,
            model_name=settings.whisper_model,
            language=settings.whisper_language,
            initial_prompt=settings.whisper_initial_prompt,
            model_dir=settings.whisper_model_dir,
            timeout=settings.whisper_timeout,
        )
        return cls(storage, normalizer, transcriber)

    def make_job(self, archive_path: Path) -> JobRunnable:
        """Job body processing ``archive_path``, ready to submit to the JobQueue."""
        return partial(self.process_archive, Path(archive_path))

    def process_archive(self, archive_path: Path, update: ProgressUpdate) -> JobResult:
        """
        Process an uploaded scenario archive end to end.

        Args:
            archive_path: Uploaded ZIP archive; deleted on success
            update: Progress handle accepting progress/items_done/total_items/message

        Returns:
            JobResult with the public report path

        Raises:
            FileNotFoundError: If the archive, scenario.xml or the item index is missing
            ValueError: If the scenario has no item index reference or no items
            zipfile.BadZipFile: If the archive cannot be read
        """
        start_time = time.time()
        archive_path = Path(archive_path)

        try:
            logger.info(f"Starting processing for archive {archive_path.name}")
            job_dir = self.storage.create_job_dir(archive_path)
            update(progress=PROGRESS_STARTED, message="Extracting archive")

            # Stage 1: Extraction
            extract_archive(archive_path, job_dir.work_dir)
            update(progress=PROGRESS_EXTRACTED, message="Reading scenario")

            # Stage 2: Scenario and index resolution
            scenario_path = find_file_recursive(job_dir.work_dir, SCENARIO_FILE_NAMES)
            if scenario_path is None:
                raise FileNotFoundError("scenario.xml not found in the archive")
            logger.info(f"Scenario descriptor: {scenario_path}")

            index_path = resolve_items_index(scenario_path)
            total_items = count_index_items(index_path)
            if total_items == 0:
                raise ValueError(f"No items found in {index_path.name}")
            logger.info(f"{total_items} items listed in {index_path.name}")
            update(total_items=total_items, items_done=0, progress=PROGRESS_ITEMS_START, message="Transcribing items")

            # Stage 3: Items
            report = self._process_items(index_path.parent, total_items, update)

            # Stage 4: Report
            update(progress=PROGRESS_ASSEMBLING, message="Assembling report")
            job_dir.report_path.write_bytes(report.build())
            logger.info(f"Report written: {job_dir.report_path}")

            # Stage 5: Cleanup
            self.storage.cleanup(job_dir, archive_path)
            update(progress=PROGRESS_CLEANED_UP, message="Cleaning up")

        except Exception as e:
            logger.error(f"Processing failed for archive {archive_path.name}: {e}")
            raise

        processing_time = time.time() - start_time
        logger.info(f"Archive {archive_path.name} processed in {processing_time:.2f} seconds")

        return JobResult(
            file_path=self.storage.public_path(job_dir, job_dir.report_path),
            message=COMPLETION_MESSAGE,
        )

    def _process_items(self, items_dir: Path, total_items: int, update: ProgressUpdate) -> ReportBuilder:
        """Run every indexed item in order and collect their report sections."""
        report = ReportBuilder()
        items_done = 0

        for index in range(1, total_items + 1):
            item = self.items.process(items_dir, index)
            if item is None:
                continue

            report.add_section(item.to_section())
            items_done += 1
            update(
                progress=item_progress(items_done, total_items),
                items_done=items_done,
                total_items=total_items,
                message=f"Transcribed {item.label}",
            )

        logger.info(f"{items_done}/{total_items} items processed")
        return report
