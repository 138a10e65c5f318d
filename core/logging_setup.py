import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FILE_NAME = "kleinanzeigen-watcher.log"


def setup_logging(log_dir: Path | None = None, level: str | None = None) -> RotatingFileHandler:
    log_dir = log_dir or settings.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    logging.basicConfig(level=log_level, format=LOG_FORMAT)

    file_handler = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    file_handler.setLevel(log_level)
    logging.getLogger().addHandler(file_handler)
    return file_handler
