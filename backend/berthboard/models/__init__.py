"""Import all models to register them with SQLAlchemy metadata."""
from berthboard.models.base import Base
from berthboard.models.storage_slot import StorageSlot

__all__ = [
    "Base",
    "StorageSlot",
]
