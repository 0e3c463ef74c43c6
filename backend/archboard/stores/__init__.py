import logging

from archboard.core.config import Settings
from archboard.core.db import create_db_engine, init_db
from archboard.stores.base import CanvasStore, CollectionStore, Storage, WorkspaceStore
from archboard.stores.memory import MemoryStorage
from archboard.stores.sql import SqlStorage

logger = logging.getLogger(__name__)

__all__ = [
    "CanvasStore",
    "CollectionStore",
    "MemoryStorage",
    "SqlStorage",
    "Storage",
    "WorkspaceStore",
    "build_storage",
]


def build_storage(settings: Settings) -> Storage:
    """Pick the storage backend for the configured environment."""
    if not settings.DATABASE_URL:
        logger.warning(
            "DATABASE_URL not set, using in-memory storage. "
            "Data is lost on restart and is not shared between workers or instances."
        )
        return MemoryStorage()

    engine = create_db_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)
    init_db(engine)
    return SqlStorage(engine)
