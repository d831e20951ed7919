# /quizflow/core/logging_config.py

import logging

from .config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Configures the root logger once for the whole process."""
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)


def truncate_for_log(text, limit: int = 100) -> str:
    """Shortens student input before it is written to a log line."""
    if text is None:
        return ""
    text = str(text)
    return text if len(text) <= limit else text[:limit] + "..."
