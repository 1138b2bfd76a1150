import threading

from jwt_refresh.schemas import SecretRecord
from jwt_refresh.services.secret_store.base import SecretStore, merge_records


class MemorySecretStore(SecretStore):
    """
    Process-local secret buffer.

    The list is replaced on every write, never mutated in place, so a reader
    always gets a complete snapshot.
    """

    def __init__(self, capacity: int = 1, records: list[SecretRecord] | None = None):
        super().__init__(capacity)
        self._lock = threading.Lock()
        self._records: tuple[SecretRecord, ...] = tuple(merge_records(records or [], [], capacity))

    async def get_all(self) -> list[SecretRecord]:
        return list(self._records)

    async def add(self, records: list[SecretRecord]) -> None:
        with self._lock:
            self._records = tuple(merge_records(records, self._records, self.capacity))
