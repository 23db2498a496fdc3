"""
Speech-to-text transcription using the OpenAI Whisper command line tool.

Whisper runs as an external process and writes ``<audio stem>.txt`` into the
requested output directory. The model, language and the domain vocabulary hint
are fixed per process from configuration.
"""

import logging
from pathlib import Path
from typing import List, Optional

from .process import ProcessResult, run_process

logger = logging.getLogger(__name__)


def transcript_path_for(audio_path: Path, output_dir: Optional[Path] = None) -> Path:
    """Transcript file Whisper writes for ``audio_path``."""
    return (output_dir or audio_path.parent) / (audio_path.stem + ".txt")


class WhisperTranscriber:
    """
    Handle audio transcription through the Whisper CLI.

    Each call blocks until the whisper process exits and returns the
    structured process result; a failed run is reported, never raised.
    """

    def __init__(
        self,
        whisper_bin: str = "whisper",
        model_name: str = "large-v3",
        language: str = "Spanish",
        initial_prompt: Optional[str] = None,
        model_dir: str = "",
        timeout: Optional[float] = None,
    ):
        """
        Initialize transcriber settings.

        Args:
            whisper_bin: whisper executable
            model_name: Whisper model size (tiny, base, small, medium, large-v3)
            language: Spoken language passed to --language
            initial_prompt: Vocabulary hint passed to --initial_prompt
            model_dir: Optional directory holding downloaded models
            timeout: Seconds allowed per transcription (None for no limit)
        """
        self.whisper_bin = whisper_bin
        self.model_name = model_name
        self.language = language
        self.initial_prompt = initial_prompt
        self.model_dir = model_dir
        self.timeout = timeout

    def build_args(self, audio_path: Path, output_dir: Path) -> List[str]:
        args = [
            self.whisper_bin,
            str(audio_path),
            "--model",
            self.model_name,
            "--language",
            self.language,
            "--fp16",
            "False",
            "--output_dir",
            str(output_dir),
            "--output_format",
            "txt",
        ]
        if self.initial_prompt:
            args += ["--initial_prompt", self.initial_prompt]
        if self.model_dir:
            args += ["--model_dir", self.model_dir]
        return args

    def transcribe(self, audio_path: Path, output_dir: Path) -> ProcessResult:
        """
        Transcribe an audio file into ``output_dir``.

        Args:
            audio_path: Audio file (normally the normalized WAV)
            output_dir: Directory receiving the .txt transcript

        Returns:
            ProcessResult of the whisper invocation
        """
        logger.info(f"Transcribing {audio_path.name} with model {self.model_name}")
        result = run_process(self.build_args(audio_path, output_dir), timeout=self.timeout)

        if result.ok:
            logger.info(f"Whisper finished {audio_path.name} in {result.duration:.2f}s")
        else:
            logger.error(f"Whisper failed for {audio_path.name}: {result.describe()}")
        return result
