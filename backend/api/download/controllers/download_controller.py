"""Download controller — serves drop content by code."""

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Response

from config import Settings, get_settings
from api.download.services import download_service
from errors import NotFound, StorageError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Download"])


@router.get("/drop/{code}")
async def download_drop(code: str, settings: Settings = Depends(get_settings)):
    """Return the drop's bytes. No secret needed; the code is the capability."""
    try:
        drop, data = await download_service.fetch_drop(code, settings)
    except NotFound:
        raise HTTPException(status_code=404, detail="Drop not found or expired")
    except StorageError:
        logger.exception("Download of %s failed", code)
        raise HTTPException(status_code=500, detail="Storage failure")

    headers = {"Cache-Control": "no-store"}
    if drop.filename:
        headers["Content-Disposition"] = f"attachment; filename*=UTF-8''{quote(drop.filename)}"

    return Response(content=data, media_type=drop.content_type, headers=headers)
