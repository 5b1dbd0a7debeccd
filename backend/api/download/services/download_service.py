"""Download service — handles drop retrieval."""

from config import Settings
from deadline import Deadline
from api.blobs.repositories import blob_repository
from api.drops.dto.drop import DropResponse
from api.drops.repositories import drops_repository


async def fetch_drop(code: str, settings: Settings) -> tuple[DropResponse, bytes]:
    """Return metadata and content for a servable drop.

    Raises NotFound when the code is unknown, expired (swept or not),
    out of downloads, or its blob is gone.
    """
    deadline = Deadline(settings.operation_timeout)
    drop = await deadline.run(drops_repository.get_by_code, code)
    await deadline.run(drops_repository.claim_download, code)
    data = await deadline.run(blob_repository.get, code)
    return drop, data
