"""
External engine adapters.

- AudioNormalizer: ffmpeg conversion to mono 16 kHz PCM WAV
- WhisperTranscriber: Whisper CLI speech-to-text
- run_process: subprocess runner returning a structured ProcessResult
"""

from .normalizer import AudioNormalizer, normalized_path_for
from .process import ProcessResult, run_process
from .transcription import WhisperTranscriber, transcript_path_for

__all__ = [
    "AudioNormalizer",
    "ProcessResult",
    "WhisperTranscriber",
    "normalized_path_for",
    "run_process",
    "transcript_path_for",
]
