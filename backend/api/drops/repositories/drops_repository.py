"""Drops repository — data access layer for drop metadata.

Every function opens its own session and commits before returning, so each
call is one atomic unit against the database. Nothing here holds a session
across calls, and the iterators below re-open a session per batch.
"""

import functools
import secrets
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from database import SessionLocal
from api.drops.dto.drop import DropResponse
from api.drops.orm.drop_model import DropModel, IssuedCodeModel
from errors import NotFound, StorageError, ValidationError

CODE_BYTES = 16
BATCH_SIZE = 500


def _get_session():
    return SessionLocal()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _to_db(dt: datetime) -> datetime:
    """SQLite stores naive timestamps; everything we store is UTC."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _storage_errors(fn):
    """Re-raise database failures as StorageError."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except SQLAlchemyError as e:
            raise StorageError(f"{fn.__name__} failed: {e}") from e

    return wrapper


def _model_to_dto(model: DropModel) -> DropResponse:
    return DropResponse(
        code=model.code,
        filename=model.filename,
        content_type=model.content_type or "application/octet-stream",
        size=model.size or 0,
        max_downloads=model.max_downloads,
        download_count=model.download_count or 0,
        expires_at=_from_db(model.expires_at),
        created_at=_from_db(model.created_at),
    )


def _live(now: datetime):
    """Rows that may still be served at ``now``."""
    return (
        or_(DropModel.expires_at.is_(None), DropModel.expires_at > _to_db(now)),
        or_(
            DropModel.max_downloads.is_(None),
            DropModel.download_count < DropModel.max_downloads,
        ),
    )


@_storage_errors
def reserve_code() -> str:
    """Issue a code that has never been handed out before."""
    while True:
        code = secrets.token_urlsafe(CODE_BYTES)
        with _get_session() as session:
            session.add(IssuedCodeModel(code=code, issued_at=_to_db(utc_now())))
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                continue
        return code


@_storage_errors
def create(
    code: str,
    size: int,
    ttl: timedelta | None = None,
    filename: str | None = None,
    content_type: str = "application/octet-stream",
    max_downloads: int | None = None,
) -> DropResponse:
    """Insert the metadata row. ``ttl=None`` means the drop never expires."""
    if ttl is not None and ttl <= timedelta(0):
        raise ValidationError("TTL must be positive")
    created_at = utc_now()
    expires_at = created_at + ttl if ttl is not None else None

    with _get_session() as session:
        model = DropModel(
            code=code,
            filename=filename,
            content_type=content_type,
            size=size,
            max_downloads=max_downloads,
            download_count=0,
            expires_at=_to_db(expires_at) if expires_at else None,
            created_at=_to_db(created_at),
        )
        session.add(model)
        session.commit()
        return _model_to_dto(model)


@_storage_errors
def get_by_code(code: str, now: datetime | None = None) -> DropResponse:
    """Return a servable drop. Expired and exhausted rows count as missing."""
    now = now or utc_now()
    with _get_session() as session:
        stmt = select(DropModel).where(DropModel.code == code, *_live(now))
        model = session.scalars(stmt).first()
        if model is None:
            raise NotFound(code)
        return _model_to_dto(model)


@_storage_errors
def claim_download(code: str, now: datetime | None = None) -> None:
    """Count one download, unless the drop expired or ran out meanwhile."""
    now = now or utc_now()
    with _get_session() as session:
        stmt = (
            update(DropModel)
            .where(DropModel.code == code, *_live(now))
            .values(download_count=DropModel.download_count + 1)
        )
        result = session.execute(stmt)
        session.commit()
        if result.rowcount == 0:
            raise NotFound(code)


@_storage_errors
def delete_by_code(code: str) -> None:
    with _get_session() as session:
        result = session.execute(delete(DropModel).where(DropModel.code == code))
        session.commit()
        if result.rowcount == 0:
            raise NotFound(code)


@_storage_errors
def code_exists(code: str) -> bool:
    """True while a metadata row exists, live or not."""
    with _get_session() as session:
        stmt = select(DropModel.id).where(DropModel.code == code)
        return session.scalars(stmt).first() is not None


@_storage_errors
def list_all() -> list[DropResponse]:
    with _get_session() as session:
        models = session.scalars(select(DropModel).order_by(DropModel.created_at.desc())).all()
        return [_model_to_dto(m) for m in models]


@_storage_errors
def count() -> int:
    with _get_session() as session:
        return session.scalar(select(func.count(DropModel.id))) or 0


@_storage_errors
def get_total_storage() -> int:
    with _get_session() as session:
        total = session.scalar(select(func.sum(DropModel.size)))
        return total or 0


@_storage_errors
def get_total_downloads() -> int:
    with _get_session() as session:
        total = session.scalar(select(func.sum(DropModel.download_count)))
        return total or 0


@_storage_errors
def _max_id() -> int:
    with _get_session() as session:
        return session.scalar(select(func.max(DropModel.id))) or 0


@_storage_errors
def _fetch_batch(criteria, after_id: int, upper_id: int, batch_size: int):
    with _get_session() as session:
        stmt = (
            select(DropModel.id, DropModel.code)
            .where(DropModel.id > after_id, DropModel.id <= upper_id, *criteria)
            .order_by(DropModel.id)
            .limit(batch_size)
        )
        return session.execute(stmt).all()


def _iter_codes(criteria, batch_size: int) -> Iterator[str]:
    """Walk matching rows in id order, bounded by the max id seen at start."""
    upper_id = _max_id()
    after_id = 0
    while True:
        rows = _fetch_batch(criteria, after_id, upper_id, batch_size)
        if not rows:
            return
        for row_id, code in rows:
            yield code
        after_id = rows[-1][0]


def iter_expired(now: datetime | None = None, batch_size: int = BATCH_SIZE) -> Iterator[str]:
    now = now or utc_now()
    criteria = (DropModel.expires_at.isnot(None), DropModel.expires_at <= _to_db(now))
    return _iter_codes(criteria, batch_size)


def iter_exhausted(batch_size: int = BATCH_SIZE) -> Iterator[str]:
    criteria = (
        DropModel.max_downloads.isnot(None),
        DropModel.download_count >= DropModel.max_downloads,
    )
    return _iter_codes(criteria, batch_size)


def iter_created_before(cutoff: datetime, batch_size: int = BATCH_SIZE) -> Iterator[str]:
    criteria = (DropModel.created_at < _to_db(cutoff),)
    return _iter_codes(criteria, batch_size)
