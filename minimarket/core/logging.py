"""
Logging setup shared by the API process and the scheduler.
"""
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from .config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Optional[str] = None, logs_path: Optional[str] = None) -> None:
    """Configure root logging once; adds a rotating file when a logs path is set."""
    level = (level or settings.LOG_LEVEL).upper()
    logs_path = logs_path or settings.LOGS_PATH

    logging.basicConfig(level=level, format=LOG_FORMAT)

    if logs_path:
        os.makedirs(logs_path, exist_ok=True)
        root = logging.getLogger()
        target = os.path.join(logs_path, "minimarket.log")
        if not any(getattr(h, "baseFilename", None) == os.path.abspath(target) for h in root.handlers):
            handler = RotatingFileHandler(target, maxBytes=5 * 1024 * 1024, backupCount=5)
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(handler)

    # SQL echo is controlled by DEBUG on the engine, keep the logger quiet otherwise
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
