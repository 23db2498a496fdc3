"""
Archive extraction and file lookup inside an extracted scenario.
"""

import logging
import os
import time
import zipfile
from pathlib import Path
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


def extract_archive(archive_path: Path, target_dir: Path) -> None:
    """
    Unpack a ZIP archive into ``target_dir``.

    Raises:
        FileNotFoundError: If the archive does not exist
        zipfile.BadZipFile: If the file is not a readable ZIP archive
    """
    if not archive_path.exists():
        raise FileNotFoundError(f"Archive not found: {archive_path}")

    size_mb = archive_path.stat().st_size / (1024 * 1024)
    logger.info(f"Extracting {archive_path.name} ({size_mb:.2f} MB) into {target_dir}")

    start_time = time.time()
    target_dir.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(archive_path) as archive:
        archive.extractall(target_dir)
    logger.info(f"Extraction finished in {time.time() - start_time:.2f}s")


def find_file_recursive(base_dir: Path, names: Iterable[str]) -> Optional[Path]:
    """
    Find the first file under ``base_dir`` whose name matches one of ``names``.

    Matching ignores case. Unreadable directories are skipped.
    """
    wanted = {name.lower() for name in names}
    for dirpath, dirnames, filenames in os.walk(base_dir):
        dirnames.sort()
        for filename in sorted(filenames):
            if filename.lower() in wanted:
                return Path(dirpath) / filename
    return None
