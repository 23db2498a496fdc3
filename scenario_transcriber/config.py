"""
Configuration management with three-tier precedence system:
1. Default values from codebase
2. Environment variables from .env
3. Explicit overrides passed by the caller (tests, CLI flags)

Precedence: Overrides > Environment Variables > Defaults
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_FFMPEG = {
    "win32": "ffmpeg.exe",
    "linux": "/usr/bin/ffmpeg",
    "darwin": "/opt/homebrew/bin/ffmpeg",
}

DEFAULT_INITIAL_PROMPT = (
    "Audio de comunicaciones de radio policiales. Usar abreviaturas y codigo Q. "
    "Abreviaturas/siglas. "
    "Codigo Q frecuente: QSL, QRV, QTH, QRM, QRX, QRT, QRP, QRO, QSY, QSA, QSB, QTC, QTR."
)


class ConfigManager:
    """Manages configuration with three-tier precedence."""

    # Default values (Tier 1 - Codebase defaults)
    DEFAULTS = {
        "API_BASE_URL": "http://localhost:3000",
        "HOST": "0.0.0.0",
        "PORT": "3000",
        "LOG_LEVEL": "INFO",
        "UPLOADS_DIR": "uploads",
        "MAX_UPLOAD_MB": "1024",
        "FFMPEG_BIN": DEFAULT_FFMPEG.get(sys.platform, "ffmpeg"),
        "FFMPEG_TIMEOUT": "600",
        "WHISPER_BIN": "whisper",
        "WHISPER_MODEL": "large-v3",
        "WHISPER_LANG": "Spanish",
        "WHISPER_MODEL_DIR": "",
        "WHISPER_USE_PROMPT": "true",
        "WHISPER_INITIAL_PROMPT": DEFAULT_INITIAL_PROMPT,
        "WHISPER_TIMEOUT": "0",
    }

    @staticmethod
    def get(key: str, override: Optional[Any] = None) -> Any:
        """
        Get configuration value with three-tier precedence.

        Args:
            key: Configuration key
            override: Explicit value (highest priority)

        Returns:
            Configuration value from highest priority source

        Priority:
            1. Override (if provided and not empty)
            2. Environment variable
            3. Default value
        """
        # Tier 3: explicit override (highest priority)
        if override is not None and override != "":
            return override

        # Tier 2: Environment variable
        env_value = os.getenv(key)
        if env_value is not None and env_value != "":
            return env_value

        # Tier 1: Default value
        return ConfigManager.DEFAULTS.get(key, "")

    @staticmethod
    def get_display_value(key: str, override: Optional[Any] = None) -> tuple[Any, str]:
        """
        Get configuration value and its source.

        Returns:
            Tuple of (value, source) where source is 'override', 'env', or 'default'
        """
        if override is not None and override != "":
            return override, "override"

        env_value = os.getenv(key)
        if env_value is not None and env_value != "":
            return env_value, "env"

        return ConfigManager.DEFAULTS.get(key, ""), "default"

    @staticmethod
    def get_bool(key: str, override: Optional[Any] = None) -> bool:
        """Read a flag; anything but 'false' (case-insensitive) counts as true."""
        return str(ConfigManager.get(key, override)).strip().lower() != "false"

    @staticmethod
    def get_timeout(key: str, override: Optional[Any] = None) -> Optional[float]:
        """Read a timeout in seconds; zero or negative means no timeout."""
        value = float(ConfigManager.get(key, override))
        return value if value > 0 else None


@dataclass(frozen=True)
class Settings:
    """Static configuration consumed by the pipeline and the server."""

    uploads_dir: Path
    ffmpeg_bin: str
    ffmpeg_timeout: Optional[float]
    whisper_bin: str
    whisper_model: str
    whisper_language: str
    whisper_model_dir: str
    whisper_initial_prompt: Optional[str]
    whisper_timeout: Optional[float]
    max_upload_bytes: int
    log_level: str
    host: str
    port: int

    @classmethod
    def load(cls, overrides: Optional[Dict[str, Any]] = None) -> "Settings":
        """
        Build settings from overrides, environment and defaults.

        Args:
            overrides: Mapping of configuration keys (e.g. "UPLOADS_DIR") to values
        """
        overrides = overrides or {}

        def get(key: str) -> Any:
            return ConfigManager.get(key, overrides.get(key))

        use_prompt = ConfigManager.get_bool("WHISPER_USE_PROMPT", overrides.get("WHISPER_USE_PROMPT"))

        return cls(
            uploads_dir=Path(get("UPLOADS_DIR")).resolve(),
            ffmpeg_bin=get("FFMPEG_BIN"),
            ffmpeg_timeout=ConfigManager.get_timeout("FFMPEG_TIMEOUT", overrides.get("FFMPEG_TIMEOUT")),
            whisper_bin=get("WHISPER_BIN"),
            whisper_model=get("WHISPER_MODEL"),
            whisper_language=get("WHISPER_LANG"),
            whisper_model_dir=get("WHISPER_MODEL_DIR"),
            whisper_initial_prompt=get("WHISPER_INITIAL_PROMPT") if use_prompt else None,
            whisper_timeout=ConfigManager.get_timeout("WHISPER_TIMEOUT", overrides.get("WHISPER_TIMEOUT")),
            max_upload_bytes=int(get("MAX_UPLOAD_MB")) * 1024 * 1024,
            log_level=str(get("LOG_LEVEL")).upper(),
            host=get("HOST"),
            port=int(get("PORT")),
        )
