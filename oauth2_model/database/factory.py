"""Factory for creating record store instances from settings."""

import logging

from oauth2_model.config import Settings, get_settings
from oauth2_model.database.base import Store
from oauth2_model.database.file_store import FileStore
from oauth2_model.database.memory import InMemoryStore

logger = logging.getLogger(__name__)


def create_store(settings: Settings | None = None) -> Store:
    """Create the record store selected by ``oauth2_store``.

    Args:
        settings: Settings to read from (defaults to the cached instance)

    Returns:
        A store implementing the ``Store`` protocol
    """
    settings = settings or get_settings()

    if settings.oauth2_store == "file":
        logger.info("Using file store at %s", settings.oauth2_storage_dir)
        return FileStore(settings.oauth2_storage_dir)

    logger.info("Using in-memory store")
    return InMemoryStore()
