"""Upload service — handles drop creation."""

import asyncio
import logging
import re
from datetime import timedelta
from pathlib import PurePosixPath

from config import Settings
from deadline import Deadline
from api.blobs.repositories import blob_repository
from api.drops.repositories import drops_repository
from api.upload.dto.upload import UploadResponse
from errors import DropError, OperationTimeout, ValidationError

logger = logging.getLogger(__name__)

NEVER = "never"
MAX_TTL = timedelta(days=3650)


def parse_ttl(ttl_str: str | None) -> timedelta | None:
    """Parse a TTL like '30s', '2h', '3d' into a timedelta.

    Empty or 'never' means no expiry. Anything else is a ValidationError.
    """
    if ttl_str is None:
        return None
    ttl_str = ttl_str.strip().lower()
    if not ttl_str or ttl_str == NEVER:
        return None

    match = re.match(r"^(\d+)([smhdw])$", ttl_str)
    if not match:
        raise ValidationError(f"Invalid expiry {ttl_str!r}; use e.g. 30s, 10m, 2h, 3d, 1w or 'never'")

    value = int(match.group(1))
    if value == 0:
        raise ValidationError("Expiry must be greater than zero")
    unit = match.group(2)

    units = {
        "s": "seconds",
        "m": "minutes",
        "h": "hours",
        "d": "days",
        "w": "weeks",
    }

    try:
        ttl = timedelta(**{units[unit]: value})
    except OverflowError:
        ttl = None
    if ttl is None or ttl > MAX_TTL:
        raise ValidationError(f"Expiry {ttl_str!r} is too large")
    return ttl


def parse_size(size_str: str) -> int:
    """Parse size string like '100MB', '1GB' into bytes. 0 means unlimited."""
    if not size_str:
        return 0

    match = re.match(r"^(\d+(?:\.\d+)?)\s*(B|KB|MB|GB|TB)$", size_str.strip().upper())
    if not match:
        return 0

    value = float(match.group(1))
    unit = match.group(2)

    multipliers = {
        "B": 1,
        "KB": 1024,
        "MB": 1024**2,
        "GB": 1024**3,
        "TB": 1024**4,
    }

    return int(value * multipliers[unit])


def parse_max_downloads(raw: str | None) -> int | None:
    if raw is None or not raw.strip():
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"Invalid max downloads {raw!r}") from None
    if value < 1:
        raise ValidationError("Max downloads must be at least 1")
    return value


def check_size(size: int, settings: Settings) -> None:
    max_file_size = parse_size(settings.max_file_size)
    if max_file_size and size > max_file_size:
        raise ValidationError(f"Payload exceeds max size of {settings.max_file_size}")


async def save_upload(
    data: bytes,
    settings: Settings,
    base_url: str,
    filename: str | None = None,
    content_type: str | None = None,
    expires: str | None = None,
    max_downloads: str | None = None,
) -> UploadResponse:
    """Write the blob, then the metadata row.

    If the metadata write fails outright the blob is removed again. If it
    timed out the write may still land, so the blob is left in place and the
    janitor's orphan pass decides later.
    """
    if not data:
        raise ValidationError("Payload is empty")
    check_size(len(data), settings)

    ttl = parse_ttl(expires if expires is not None else settings.default_expiry)
    max_dl = parse_max_downloads(max_downloads)
    content_type = content_type or "application/octet-stream"
    if filename:
        filename = PurePosixPath(filename.replace("\\", "/")).name or None

    deadline = Deadline(settings.operation_timeout)
    code = await deadline.run(drops_repository.reserve_code)
    await deadline.run(blob_repository.put, code, data)

    try:
        drop = await deadline.run(
            drops_repository.create,
            code=code,
            size=len(data),
            ttl=ttl,
            filename=filename,
            content_type=content_type,
            max_downloads=max_dl,
        )
    except OperationTimeout:
        logger.warning("Metadata write for %s timed out; leaving blob for the janitor", code)
        raise
    except DropError:
        try:
            await asyncio.to_thread(blob_repository.delete, code)
        except DropError:
            logger.warning("Could not remove blob for failed upload %s", code)
        raise

    logger.info("Created drop %s (%d bytes, expires %s)", code, drop.size, drop.expires_at or NEVER)

    return UploadResponse(
        url=f"{base_url.rstrip('/')}/drop/{code}",
        code=code,
        filename=drop.filename,
        size=drop.size,
        expires_at=drop.expires_at,
        max_downloads=drop.max_downloads,
    )
