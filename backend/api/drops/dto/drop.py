"""Drop Data Transfer Objects."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class DropResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    filename: str | None = None
    content_type: str = "application/octet-stream"
    size: int
    max_downloads: int | None = None
    download_count: int = 0
    expires_at: datetime | None = None
    created_at: datetime


class DropStats(BaseModel):
    total_drops: int
    total_storage: int
    total_downloads: int
