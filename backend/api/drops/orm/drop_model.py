"""Drop ORM models."""

from sqlalchemy import Column, DateTime, Integer, String

from database import Base


class DropModel(Base):
    __tablename__ = "drops"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String, unique=True, nullable=False, index=True)
    filename = Column(String, nullable=True)
    content_type = Column(String, nullable=False, default="application/octet-stream")
    size = Column(Integer, nullable=False, default=0)
    max_downloads = Column(Integer, nullable=True)
    download_count = Column(Integer, nullable=False, default=0)
    expires_at = Column(DateTime, nullable=True, index=True)
    created_at = Column(DateTime, nullable=False)


class IssuedCodeModel(Base):
    """Every code ever handed out. Rows are never deleted."""

    __tablename__ = "issued_codes"

    code = Column(String, primary_key=True)
    issued_at = Column(DateTime, nullable=False)
