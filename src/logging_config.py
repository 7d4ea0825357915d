"""Configure application logging using the Python standard library.

``configure_logging`` installs a console handler and a rotating file
handler on the root logger.  Records are rendered as one JSON object per
line with the timestamp, level, module and message plus the checkout
context passed through ``extra=``: ``checkout_id``, ``customer`` and any
keys of a nested ``extra`` dict, which are merged at the top level.
"""

import json
import logging
import logging.handlers
import os
from datetime import datetime, timezone
from typing import Optional

from config import load_settings

LOG_FILE_NAME = "checkout.log"
_CONTEXT_FIELDS = ("checkout_id", "customer")


class JsonFormatter(logging.Formatter):
    """Format log records as JSON strings."""

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc)
            .replace(tzinfo=None)
            .isoformat() + "Z",
            "level": record.levelname,
            "module": record.module,
            "message": record.getMessage(),
        }
        for name in _CONTEXT_FIELDS:
            if hasattr(record, name):
                log_record[name] = getattr(record, name)
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            log_record.update(extra)
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_record, default=str)


def configure_logging(log_dir: Optional[str] = None, level: Optional[int] = None) -> None:
    """Configure the root logger with JSON console and file handlers.

    Args:
        log_dir: Directory for ``checkout.log``; created if missing.  An
            empty string skips the file handler.  ``None`` uses
            ``CHECKOUT_LOG_DIR``.
        level: Logging level; ``None`` uses ``CHECKOUT_LOG_LEVEL``.
    """
    if log_dir is None or level is None:
        settings = load_settings()
        log_dir = settings.log_dir if log_dir is None else log_dir
        level = settings.log_level_number if level is None else level

    logger = logging.getLogger()
    logger.setLevel(level)
    # Drop handlers from earlier calls or basicConfig
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = JsonFormatter()
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=os.path.join(log_dir, LOG_FILE_NAME),
            maxBytes=5 * 1024 * 1024,  # 5 MB per log file
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        logger.addHandler(file_handler)
