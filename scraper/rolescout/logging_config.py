"""Logging for scrape runs.

Two sinks, both under ``SCRAPER_LOG_DIR`` (default ``scraper/logs``):
  scraper.log           human readable, rotated at 1 MB
  scraper.events.jsonl  one JSON object per run event, tagged with the run id

Roles run concurrently, so per-role messages go through ``role_logger`` which
prefixes them with ``[role]``. Event lines may be written from worker threads
(workbook saves run in ``asyncio.to_thread``) and are serialised by a lock.
"""
from __future__ import annotations
import json
import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEFAULT_LOG_DIR = Path(__file__).resolve().parent.parent / 'logs'
LOG_FILE_NAME = 'scraper.log'
EVENTS_FILE_NAME = 'scraper.events.jsonl'

RUN_ID = uuid.uuid4().hex[:12]

_FILE_FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'
_CONSOLE_FORMAT = '%(levelname)s %(message)s'
_NOISY_LOGGERS = ('playwright', 'asyncio')

_event_lock = threading.Lock()


def log_dir() -> Path:
    return Path(os.getenv('SCRAPER_LOG_DIR') or DEFAULT_LOG_DIR)


def events_path() -> Path:
    return log_dir() / EVENTS_FILE_NAME


def _file_handler() -> logging.Handler:
    directory = log_dir()
    directory.mkdir(parents=True, exist_ok=True)
    fh = RotatingFileHandler(directory / LOG_FILE_NAME, maxBytes=1_000_000, backupCount=5, encoding='utf-8')
    fh.setFormatter(logging.Formatter(_FILE_FORMAT))
    return fh


def setup_logging(debug: bool = False):
    root = logging.getLogger()
    if root.handlers:
        return
    level = logging.DEBUG if debug else logging.INFO
    root.setLevel(level)
    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    console.setLevel(level)
    root.addHandler(console)
    if not os.getenv('SCRAPER_DISABLE_FILE_LOGS'):
        try:
            root.addHandler(_file_handler())
        except OSError as e:
            root.warning(f"File logging disabled, cannot open {log_dir()}: {e}")
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class RoleLogger(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        return f"[{self.extra['role']}] {msg}", kwargs


def role_logger(name: str, role: str) -> RoleLogger:
    return RoleLogger(logging.getLogger(name), {'role': role})


def log_event(event: str, **fields):
    """Append a structured JSON event line for this run."""
    if os.getenv('SCRAPER_DISABLE_EVENTS'):
        return
    rec = {'ts': datetime.now(timezone.utc).isoformat(timespec='seconds'), 'run': RUN_ID, 'event': event}
    rec.update(fields)
    line = json.dumps(rec, ensure_ascii=False, default=str)
    path = events_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with _event_lock, path.open('a', encoding='utf-8') as f:
            f.write(line + '\n')
    except OSError:
        logging.getLogger(__name__).debug('Failed to write structured log line', exc_info=True)


__all__ = ["setup_logging", "log_event", "role_logger", "RoleLogger", "RUN_ID"]
