from .base import SecretStore, merge_records
from .memory import MemorySecretStore
from .redis import RedisSecretStore

__all__ = ["SecretStore", "merge_records", "MemorySecretStore", "RedisSecretStore"]
