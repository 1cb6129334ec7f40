# backend/app/core/logging_config.py
import logging
from logging.handlers import RotatingFileHandler

from backend.app.core.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: Settings) -> None:
    """
    Configure root logging once at start-up.

    Console output always; a rotating file is added when LOG_FILE is set.
    """
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)

    if settings.LOG_FILE:
        root = logging.getLogger()
        already_attached = any(
            isinstance(h, RotatingFileHandler)
            and getattr(h, "baseFilename", "").endswith(settings.LOG_FILE)
            for h in root.handlers
        )
        if not already_attached:
            file_handler = RotatingFileHandler(
                settings.LOG_FILE, maxBytes=1024 * 1024, backupCount=10
            )
            file_handler.setFormatter(logging.Formatter(
                LOG_FORMAT + " [in %(pathname)s:%(lineno)d]"
            ))
            file_handler.setLevel(level)
            root.addHandler(file_handler)

    # SQL echo is controlled by DATABASE_ECHO, not the root level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
