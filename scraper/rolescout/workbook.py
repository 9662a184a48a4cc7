"""Spreadsheet writer for per-role job workbooks.

Every write goes to a sibling ``<name>.tmp`` file which is then renamed over
the destination with ``os.replace``. A crash or failure before the rename
leaves the previous workbook untouched; the destination is never observed
half-written.

Two write modes:
  append_records  merge: keep existing "Jobs" rows and add the new ones after them
  write_records   replace the "Jobs" sheet contents with exactly the given rows

Both return True on success. Any read / write / rename problem is logged and
reported as False; the batch is dropped and the on-disk file keeps the state of
the last successful write.
"""
from __future__ import annotations
import logging
import os
import time
from pathlib import Path
from typing import Callable, Iterable, List, Optional
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import IllegalCharacterError, InvalidFileException

from .errors import PersistenceError
from .logging_config import log_event
from .models import COLUMNS, SHEET_NAME, JobRecord
from .settings import Settings, load_settings

logger = logging.getLogger(__name__)


def temp_path_for(path: Path) -> Path:
    return path.with_name(path.name + '.tmp')


def _is_header(row) -> bool:
    values = [str(v).strip().lower() if v is not None else '' for v in row[: len(COLUMNS)]]
    return tuple(values) == COLUMNS


def _load_workbook(path: Path) -> Optional[Workbook]:
    if not path.exists():
        return None
    try:
        return load_workbook(path)
    except (OSError, BadZipFile, InvalidFileException, KeyError, ValueError) as e:
        raise PersistenceError(f"Cannot read workbook {path}: {e}") from e


def read_records(path: Path, sheet: str = SHEET_NAME) -> List[JobRecord]:
    """Rows of ``sheet`` as JobRecords (header skipped). Missing file or sheet -> []."""
    wb = _load_workbook(Path(path))
    if wb is None or sheet not in wb.sheetnames:
        return []
    out: List[JobRecord] = []
    for row in wb[sheet].iter_rows(values_only=True):
        if not row or all(v is None for v in row):
            continue
        if _is_header(row):
            continue
        out.append(JobRecord.from_row(row))
    return out


def _new_jobs_sheet(wb: Workbook, index: Optional[int] = None):
    ws = wb.create_sheet(SHEET_NAME, index)
    ws.append(list(COLUMNS))
    return ws


def replace_with_retry(tmp: Path, dest: Path, retries: int, delay: float, sleep: Callable[[float], None] = time.sleep):
    """os.replace with short exponential backoff; raises PersistenceError on exhaustion."""
    last_error: Optional[OSError] = None
    for attempt in range(retries):
        try:
            os.replace(tmp, dest)
            return
        except OSError as e:
            last_error = e
            logger.warning(f"Rename {tmp.name} -> {dest.name} failed (attempt {attempt + 1}/{retries}): {e}")
            if attempt + 1 < retries:
                sleep(delay * (2 ** attempt))
    raise PersistenceError(f"Could not replace {dest} after {retries} attempts: {last_error}")


def _save_atomic(wb: Workbook, dest: Path, settings: Settings):
    tmp = temp_path_for(dest)
    try:
        wb.save(tmp)
        replace_with_retry(tmp, dest, settings.rename_retries, settings.rename_delay)
    except OSError as e:
        raise PersistenceError(f"Cannot write workbook {dest}: {e}") from e
    finally:
        if tmp.exists():
            try:
                tmp.unlink()
            except OSError:
                logger.debug(f"Could not remove temp file {tmp}", exc_info=True)


def _persist(records: Iterable[JobRecord], path: Path, settings: Optional[Settings], replace: bool) -> bool:
    settings = settings or load_settings()
    dest = Path(path)
    rows = [r.as_row() for r in records]
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        wb = _load_workbook(dest)
        if wb is None:
            wb = Workbook()
            wb.remove(wb.active)
            ws = _new_jobs_sheet(wb)
        elif SHEET_NAME not in wb.sheetnames:
            ws = _new_jobs_sheet(wb)
        elif replace:
            index = wb.sheetnames.index(SHEET_NAME)
            wb.remove(wb[SHEET_NAME])
            ws = _new_jobs_sheet(wb, index)
        else:
            ws = wb[SHEET_NAME]
        for row in rows:
            ws.append(list(row))
        _save_atomic(wb, dest, settings)
    except (PersistenceError, OSError, IllegalCharacterError, ValueError) as e:
        logger.error(f"Error saving workbook {dest}: {e}")
        log_event('persist_failed', path=str(dest), rows=len(rows), message=str(e))
        return False
    logger.debug(f"Saved {len(rows)} rows to {dest} (replace={replace})")
    return True


def append_records(records: Iterable[JobRecord], path: Path, settings: Optional[Settings] = None) -> bool:
    """Append rows after whatever the "Jobs" sheet already holds.

    Repeated calls are cumulative: pass only the new delta each time.
    """
    return _persist(records, path, settings, replace=False)


def write_records(records: Iterable[JobRecord], path: Path, settings: Optional[Settings] = None) -> bool:
    """Rewrite the "Jobs" sheet with exactly ``records``; other sheets are preserved."""
    return _persist(records, path, settings, replace=True)


__all__ = ["read_records", "append_records", "write_records", "replace_with_retry", "temp_path_for"]
