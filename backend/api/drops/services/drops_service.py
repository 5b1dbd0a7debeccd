"""Drops service — delete protocol and admin views."""

import logging

from api.blobs.repositories import blob_repository
from api.drops.dto.drop import DropResponse, DropStats
from api.drops.repositories import drops_repository
from errors import NotFound

logger = logging.getLogger(__name__)


def list_drops() -> list[DropResponse]:
    return drops_repository.list_all()


def delete_drop(code: str) -> None:
    """Delete metadata first, then the blob.

    Raises NotFound if the metadata row is already gone. Once the row is
    removed no new reader can reach the blob, so a blob that has vanished in
    the meantime is not an error.
    """
    drops_repository.delete_by_code(code)
    try:
        blob_repository.delete(code)
    except NotFound:
        logger.warning("Blob for %s was already gone", code)


def get_stats() -> DropStats:
    return DropStats(
        total_drops=drops_repository.count(),
        total_storage=drops_repository.get_total_storage(),
        total_downloads=drops_repository.get_total_downloads(),
    )
