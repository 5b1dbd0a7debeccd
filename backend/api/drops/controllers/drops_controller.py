"""Drops controller — deletion and admin listing."""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from auth import is_admin
from config import Settings, get_settings
from deadline import Deadline
from api.drops.dto.drop import DropResponse, DropStats
from api.drops.services import drops_service
from errors import NotFound, StorageError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Drops"])


@router.delete("/drop/{code}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_drop(request: Request, code: str, settings: Settings = Depends(get_settings)):
    if not is_admin(request, settings):
        raise HTTPException(status_code=401, detail="Admin access required")
    try:
        await Deadline(settings.operation_timeout).run(drops_service.delete_drop, code)
    except NotFound:
        raise HTTPException(status_code=404, detail="Drop not found")
    except StorageError:
        logger.exception("Delete of %s failed", code)
        raise HTTPException(status_code=500, detail="Storage failure")
    logger.info("Deleted drop %s", code)


@router.get("/api/drops", response_model=list[DropResponse])
async def list_drops(request: Request, settings: Settings = Depends(get_settings)):
    if not is_admin(request, settings):
        raise HTTPException(status_code=401, detail="Admin access required")
    try:
        return await asyncio.to_thread(drops_service.list_drops)
    except StorageError:
        logger.exception("Listing drops failed")
        raise HTTPException(status_code=500, detail="Storage failure")


@router.get("/api/drops/stats", response_model=DropStats)
async def drop_stats(request: Request, settings: Settings = Depends(get_settings)):
    if not is_admin(request, settings):
        raise HTTPException(status_code=401, detail="Admin access required")
    try:
        return await asyncio.to_thread(drops_service.get_stats)
    except StorageError:
        logger.exception("Computing stats failed")
        raise HTTPException(status_code=500, detail="Storage failure")
