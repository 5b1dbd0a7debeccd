"""Blob repository — raw drop content on disk, one file per code.

Writes go to a temp file in the same directory and are renamed into place,
so a reader either sees the whole blob or no blob at all.
"""

import logging
import os
import re
import tempfile
from collections.abc import Iterator
from datetime import datetime, timezone
from pathlib import Path

from config import get_settings
from errors import NotFound, StorageError

TEMP_PREFIX = ".tmp-"

_CODE_RE = re.compile(r"^[A-Za-z0-9_-]+$")

logger = logging.getLogger(__name__)


def _files_dir() -> Path:
    files_dir = get_settings().files_dir
    files_dir.mkdir(parents=True, exist_ok=True)
    return files_dir


def _path(code: str) -> Path:
    if not _CODE_RE.match(code):
        raise NotFound(code)
    return _files_dir() / code


def put(code: str, data: bytes) -> None:
    target = _path(code)
    tmp_name = None
    try:
        with tempfile.NamedTemporaryFile(delete=False, dir=str(target.parent), prefix=TEMP_PREFIX) as tmp:
            tmp_name = tmp.name
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, target)
    except OSError as e:
        if tmp_name:
            Path(tmp_name).unlink(missing_ok=True)
        raise StorageError(f"Failed to write blob {code}: {e}") from e


def get(code: str) -> bytes:
    path = _path(code)
    try:
        return path.read_bytes()
    except FileNotFoundError:
        raise NotFound(code) from None
    except OSError as e:
        raise StorageError(f"Failed to read blob {code}: {e}") from e


def delete(code: str) -> None:
    path = _path(code)
    try:
        path.unlink()
    except FileNotFoundError:
        raise NotFound(code) from None
    except OSError as e:
        raise StorageError(f"Failed to delete blob {code}: {e}") from e


def exists(code: str) -> bool:
    try:
        return _path(code).is_file()
    except NotFound:
        return False


def _modified_before(entry: os.DirEntry, cutoff: datetime) -> bool:
    try:
        mtime = datetime.fromtimestamp(entry.stat().st_mtime, tz=timezone.utc)
    except FileNotFoundError:
        return False
    return mtime < cutoff


def iter_codes_older_than(cutoff: datetime) -> Iterator[str]:
    """Codes of blobs last written before ``cutoff``; temp files excluded."""
    with os.scandir(_files_dir()) as entries:
        for entry in entries:
            if entry.name.startswith(TEMP_PREFIX) or not entry.is_file():
                continue
            if not _CODE_RE.match(entry.name):
                logger.warning("Ignoring unexpected file %s in blob directory", entry.name)
                continue
            if _modified_before(entry, cutoff):
                yield entry.name


def purge_temp_files(cutoff: datetime) -> int:
    """Remove temp files left behind by interrupted writes."""
    removed = 0
    with os.scandir(_files_dir()) as entries:
        for entry in entries:
            if not entry.name.startswith(TEMP_PREFIX):
                continue
            if _modified_before(entry, cutoff):
                Path(entry.path).unlink(missing_ok=True)
                removed += 1
    return removed
