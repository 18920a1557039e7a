import logging

from ..config import Settings
from .base import KeyValueStore
from .json_file import JsonFileStore
from .memory import MemoryStore
from .redis_store import RedisStore

logger = logging.getLogger("nss_admin.storage")


def build_store(app_settings: Settings) -> KeyValueStore:
    """Create the store selected by STORAGE_BACKEND."""
    backend = app_settings.storage_backend
    if backend == "redis":
        logger.info("Using redis storage prefix=%s", app_settings.redis_key_prefix)
        return RedisStore.from_url(app_settings.redis_url, key_prefix=app_settings.redis_key_prefix)
    if backend == "memory":
        logger.warning("Using in-memory storage; data is lost on restart")
        return MemoryStore()
    logger.info("Using JSON file storage dir=%s", app_settings.data_dir)
    return JsonFileStore(app_settings.data_dir)
