"""Central ORM module — imports all models for Alembic metadata discovery."""

from api.drops.orm import DropModel, IssuedCodeModel

__all__ = [
    "DropModel",
    "IssuedCodeModel",
]
