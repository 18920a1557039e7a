from .base import KeyValueStore, StorageError, validate_key
from .factory import build_store
from .json_file import JsonFileStore
from .memory import MemoryStore
from .redis_store import RedisStore

__all__ = [
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "RedisStore",
    "StorageError",
    "build_store",
    "validate_key",
]
