"""Upload controller — creates drops from a raw body or a multipart form."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from starlette.datastructures import UploadFile

from auth import ADMIN_HEADER, authorize
from config import Settings, get_settings
from api.upload.dto.upload import UploadResponse
from api.upload.services import upload_service
from errors import StorageError, Unauthorized, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Upload"])

TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
CHUNK_SIZE = 1024 * 1024  # 1MB
# Room for multipart boundaries and the small option fields.
FORM_OVERHEAD = 64 * 1024


async def _read_body(request: Request, settings: Settings) -> bytes:
    """Read the request body, giving up as soon as it exceeds the limit."""
    chunks = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        upload_service.check_size(size, settings)
        chunks.append(chunk)
    return b"".join(chunks)


async def _read_upload(upload: UploadFile, settings: Settings) -> bytes:
    """Read an uploaded form file in chunks under the same limit."""
    chunks = []
    size = 0
    while chunk := await upload.read(CHUNK_SIZE):
        size += len(chunk)
        upload_service.check_size(size, settings)
        chunks.append(chunk)
    return b"".join(chunks)


def _check_form_length(request: Request, settings: Settings) -> None:
    """Refuse multipart bodies that cannot fit before parsing them."""
    raw_length = request.headers.get("content-length")
    if raw_length is None:
        raise HTTPException(status_code=status.HTTP_411_LENGTH_REQUIRED, detail="Content-Length required")
    try:
        length = int(raw_length)
    except ValueError:
        raise ValidationError("Invalid Content-Length") from None
    max_file_size = upload_service.parse_size(settings.max_file_size)
    if max_file_size and length > max_file_size + FORM_OVERHEAD:
        raise ValidationError(f"Payload exceeds max size of {settings.max_file_size}")


def _form_str(value) -> str | None:
    if value is None or isinstance(value, UploadFile):
        return None
    return str(value)


@router.post("/drop", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def create_drop(request: Request, settings: Settings = Depends(get_settings)):
    """Upload a drop.

    Raw body: secret in ``X-Admin-Pass``, options in ``X-Expires``,
    ``X-Max-Downloads`` and ``X-Filename``.
    Multipart: fields ``password``, ``file`` or ``text``, ``expires``,
    ``max_downloads``.
    """
    base_url = settings.base_url or str(request.base_url)
    content_type = request.headers.get("content-type", "")

    try:
        if content_type.startswith("multipart/form-data"):
            header_secret = request.headers.get(ADMIN_HEADER)
            if header_secret is not None:
                authorize(header_secret, settings)
            _check_form_length(request, settings)

            form = await request.form()
            if header_secret is None:
                authorize(_form_str(form.get("password")), settings)

            upload = form.get("file")
            text = _form_str(form.get("text"))
            if isinstance(upload, UploadFile):
                data = await _read_upload(upload, settings)
                filename = upload.filename or None
                payload_type = upload.content_type
            elif text is not None:
                data = text.encode("utf-8")
                filename = None
                payload_type = TEXT_CONTENT_TYPE
            else:
                raise ValidationError("Form needs a 'file' or 'text' field")
            expires = _form_str(form.get("expires")) or None
            max_downloads = _form_str(form.get("max_downloads"))
        else:
            authorize(request.headers.get(ADMIN_HEADER), settings)
            data = await _read_body(request, settings)
            filename = request.headers.get("X-Filename") or None
            payload_type = content_type or None
            expires = request.headers.get("X-Expires") or None
            max_downloads = request.headers.get("X-Max-Downloads")

        return await upload_service.save_upload(
            data=data,
            settings=settings,
            base_url=base_url,
            filename=filename,
            content_type=payload_type,
            expires=expires,
            max_downloads=max_downloads,
        )
    except Unauthorized as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StorageError:
        logger.exception("Upload failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Storage failure")
