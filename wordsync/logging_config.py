"""Logging setup for wordsync.

Two outputs, both under ``<data_dir>/logs``:

- ``local-YYYY-MM-DD.log``: the ``wordsync`` logger hierarchy, one line per
  record in ``asctime | levelname | name | message`` form.
- ``sync-events-YYYY-MM-DD.log``: a terse audit trail of saves, deletes and
  sync passes, written by ``log_event`` and the helpers below it.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from wordsync.config import get_data_dir

LOGGER_NAME = "wordsync"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _today() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def get_log_dir(data_dir: Optional[Path] = None) -> Path:
    log_dir = Path(data_dir or get_data_dir()) / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def setup_wordsync_logging(level: str = "INFO", data_dir: Optional[Path] = None) -> logging.Logger:
    """Attach file (and at DEBUG, console) handlers to the ``wordsync`` logger.

    Safe to call repeatedly: handlers are only added once.

    Args:
        level: Level name, case-insensitive. Unknown names fall back to INFO.
        data_dir: Override for the data directory.

    Returns:
        The configured ``wordsync`` logger.
    """
    level_name = (level or "INFO").upper()
    if level_name not in _VALID_LEVELS:
        level_name = "INFO"

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level_name))

    if any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    log_file = get_log_dir(data_dir) / f"local-{_today()}.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if level_name == "DEBUG":
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    # supabase's transport is chatty at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return logger


def log_event(event_type: str, details: str, data_dir: Optional[Path] = None) -> None:
    """Append one line to today's sync-events log.

    Failures to write are reported on the ``wordsync`` logger and otherwise
    ignored; the audit trail is never allowed to break a sync.
    """
    timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
    line = f"{timestamp} | {event_type} | {details}\n"
    try:
        event_file = get_log_dir(data_dir) / f"sync-events-{_today()}.log"
        with open(event_file, "a", encoding="utf-8") as f:
            f.write(line)
    except OSError as e:
        logging.getLogger(LOGGER_NAME).debug(f"Could not write event log: {e}")


def log_sync(direction: str, count: int, errors: int = 0, data_dir: Optional[Path] = None):
    """Record a flush (``push``) or pull phase."""
    log_event("sync", f"direction={direction}, count={count}, errors={errors}", data_dir)


def log_save(
    name: str, kind: str, version: Optional[int], status: str, data_dir: Optional[Path] = None
):
    log_event("save", f"kind={kind}, name={name}, version={version}, status={status}", data_dir)


def log_delete(name: str, kind: str, status: str, data_dir: Optional[Path] = None):
    log_event("delete", f"kind={kind}, name={name}, status={status}", data_dir)
