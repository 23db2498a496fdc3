"""
Audio normalization through ffmpeg.

Converts any input recording into the canonical waveform the transcription
engine expects: mono, 16 kHz, 16-bit PCM WAV without metadata.
"""

import logging
from pathlib import Path
from typing import List, Optional

from .process import ProcessResult, run_process

logger = logging.getLogger(__name__)

NORMALIZED_SUFFIX = ".san.wav"


def normalized_path_for(source: Path) -> Path:
    """Path of the normalized copy of ``source`` (``<stem>.san.wav`` beside it)."""
    return source.with_name(source.stem + NORMALIZED_SUFFIX)


class AudioNormalizer:
    """Invoke ffmpeg to produce a mono 16 kHz PCM copy of an audio file."""

    def __init__(self, ffmpeg_bin: str = "ffmpeg", timeout: Optional[float] = None):
        """
        Args:
            ffmpeg_bin: ffmpeg executable
            timeout: Seconds allowed per conversion (None for no limit)
        """
        self.ffmpeg_bin = ffmpeg_bin
        self.timeout = timeout

    def build_args(self, source: Path, target: Path) -> List[str]:
        return [
            self.ffmpeg_bin,
            "-hide_banner",
            "-nostdin",
            "-loglevel",
            "error",
            "-y",
            "-i",
            str(source),
            "-vn",
            "-sn",
            "-dn",
            "-map_metadata",
            "-1",
            "-ac",
            "1",
            "-ar",
            "16000",
            "-c:a",
            "pcm_s16le",
            str(target),
        ]

    def normalize(self, source: Path) -> Optional[Path]:
        """
        Normalize ``source`` into ``<stem>.san.wav`` in the same directory.

        Returns:
            Path of the normalized file, or None if ffmpeg failed
        """
        target = normalized_path_for(source)
        result: ProcessResult = run_process(self.build_args(source, target), timeout=self.timeout)

        if not result.ok:
            logger.warning(f"ffmpeg failed for {source.name}: {result.describe()}")
            return None
        if not target.exists():
            logger.warning(f"ffmpeg reported success but {target.name} was not written")
            return None

        logger.info(f"Normalized {source.name} in {result.duration:.2f}s -> {target.name}")
        return target
