"""
Run the scenario transcription server.

How to run:
    poetry run python -m scenario_transcriber
"""

import logging

from .config import ConfigManager, Settings
from .server import create_app

logger = logging.getLogger(__name__)


def main():
    """Main entry point."""
    settings = Settings.load()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    for key in ConfigManager.DEFAULTS:
        if key == "WHISPER_INITIAL_PROMPT":
            continue
        value, source = ConfigManager.get_display_value(key)
        logger.info(f"{key}={value} ({source})")

    app = create_app(settings)
    app.run(host=settings.host, port=settings.port, threaded=True)


if __name__ == "__main__":
    main()
