"""
Filesystem layout for uploads, job directories and produced reports.

Layout under the uploads root:
- inbox/                      uploaded archives waiting to be processed
- jobs/<stem>-<epoch ms>/     one directory per pipeline run
    work/                     extracted archive and intermediate files
    <stem>.docx               final report (zero or one per job directory)

Job directory names are unique, so two runs never share a work directory.
"""

import logging
import re
import shutil
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

REPORT_EXTENSION = ".docx"
PUBLIC_PREFIX = "/uploads"


def normalize_stem(name: str) -> str:
    """File stem with runs of whitespace replaced by underscores."""
    return re.sub(r"\s+", "_", Path(name).stem)


def human_size(size: float) -> str:
    """Format a byte count as B/KB/MB/GB/TB."""
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while size >= 1024 and i < len(units) - 1:
        size /= 1024
        i += 1
    return f"{size:.0f} {units[i]}" if size >= 10 else f"{size:.1f} {units[i]}"


@dataclass(frozen=True)
class JobDirectory:
    """Paths belonging to one pipeline run."""

    name: str
    path: Path
    work_dir: Path
    stem: str

    @property
    def report_path(self) -> Path:
        return self.path / f"{self.stem}{REPORT_EXTENSION}"


class JobStorage:
    """Manages the uploads tree used by the pipeline."""

    def __init__(self, uploads_dir: Path):
        """
        Initialize the storage.

        Args:
            uploads_dir: Root directory for uploads and job outputs
        """
        self.uploads_dir = Path(uploads_dir)
        self.inbox_dir = self.uploads_dir / "inbox"
        self.jobs_dir = self.uploads_dir / "jobs"
        self.inbox_dir.mkdir(parents=True, exist_ok=True)
        self.jobs_dir.mkdir(parents=True, exist_ok=True)

    def save_upload(self, file_storage) -> Path:
        """
        Store an uploaded archive in the inbox as ``<stem>-<epoch ms><ext>``.

        Args:
            file_storage: werkzeug FileStorage from the request

        Returns:
            Path of the stored archive
        """
        original = secure_filename(file_storage.filename or "") or "scenario.zip"
        suffix = Path(original).suffix.lower() or ".zip"
        stamp = int(time.time() * 1000)
        target = self.inbox_dir / f"{normalize_stem(original)}-{stamp}{suffix}"
        while target.exists():
            stamp += 1
            target = self.inbox_dir / f"{normalize_stem(original)}-{stamp}{suffix}"
        file_storage.save(str(target))
        logger.info(f"Upload stored at {target}")
        return target

    def create_job_dir(self, archive_path: Path) -> JobDirectory:
        """Create a fresh, uniquely named job directory for ``archive_path``."""
        stem = normalize_stem(archive_path.name)
        stamp = int(time.time() * 1000)
        while True:
            name = f"{stem}-{stamp}"
            path = self.jobs_dir / name
            try:
                path.mkdir(parents=True)
                break
            except FileExistsError:
                stamp += 1

        work_dir = path / "work"
        work_dir.mkdir()
        return JobDirectory(name=name, path=path, work_dir=work_dir, stem=stem)

    def public_path(self, job_dir: JobDirectory, file_path: Path) -> str:
        """Externally addressable path of a file inside a job directory."""
        return f"{PUBLIC_PREFIX}/jobs/{job_dir.name}/{file_path.name}"

    def cleanup(self, job_dir: JobDirectory, archive_path: Path) -> None:
        """Delete the uploaded archive and the job's work directory."""
        try:
            archive_path.unlink()
            logger.info(f"Archive removed: {archive_path}")
        except FileNotFoundError:
            pass
        shutil.rmtree(job_dir.work_dir, ignore_errors=True)
        logger.info(f"Work directory removed: {job_dir.work_dir}")

    def list_artifacts(self, limit: int = 100) -> List[Dict[str, Any]]:
        """
        List produced reports.

        Args:
            limit: Maximum number of entries to return (clamped to 0..500)

        Returns:
            Report entries sorted by modification time (newest first)
        """
        limit = max(0, min(500, limit))
        items = []

        for job_dir in self.jobs_dir.iterdir():
            if not job_dir.is_dir():
                continue

            for report in job_dir.iterdir():
                if not report.is_file() or report.suffix.lower() != REPORT_EXTENSION:
                    continue
                try:
                    stat = report.stat()
                except OSError:
                    continue

                items.append(
                    {
                        "job_id": job_dir.name,
                        "file": report.name,
                        "url": f"{PUBLIC_PREFIX}/jobs/{job_dir.name}/{report.name}",
                        "size": stat.st_size,
                        "size_human": human_size(stat.st_size),
                        "mtime": stat.st_mtime,
                        "mtime_iso": datetime.fromtimestamp(stat.st_mtime).isoformat(),
                    }
                )

        items.sort(key=lambda x: x["mtime"], reverse=True)
        return items[:limit]
