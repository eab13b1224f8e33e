import logging

from .config import STORAGE_BACKENDS, Settings
from .errors import ConfigurationError
from .storage import MemoryStorage, Storage
from .storage_mongo import MongoStorage

logger = logging.getLogger(__name__)


def build_storage(settings: Settings) -> Storage:
    """Pick the storage backend named by STORAGE_BACKEND. There is no runtime fallback."""
    backend = settings.storage_backend
    if backend == "mongo":
        if not settings.mongo_uri:
            raise ConfigurationError("MONGO_URI not found. Check your .env file.", config_key="MONGO_URI")
        if not settings.mongo_db:
            raise ConfigurationError("MONGO_DB not found. Check your .env file.", config_key="MONGO_DB")
        logger.info(f"Using MongoDB storage: {settings.mongo_db}")
        return MongoStorage.from_settings(settings)
    if backend == "memory":
        logger.warning("Using in-memory storage; data is lost when the process exits")
        return MemoryStorage()
    raise ConfigurationError(
        f"Unknown storage backend '{backend}' (expected one of: {', '.join(STORAGE_BACKENDS)})",
        config_key="STORAGE_BACKEND",
    )
