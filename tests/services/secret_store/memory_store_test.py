import pytest

from jwt_refresh.schemas import SecretRecord
from jwt_refresh.services.secret_store import MemorySecretStore
from tests.utils import DAY, NOW


@pytest.mark.anyio
class TestMemorySecretStore:
    """Tests for MemorySecretStore."""

    async def test_empty_by_default(self):
        assert await MemorySecretStore().get_all() == []

    async def test_initial_records_are_truncated(self):
        records = [SecretRecord(secret=f"s{i}", valid_until=NOW + DAY) for i in range(3)]

        store = MemorySecretStore(capacity=2, records=records)

        assert await store.get_all() == records[:2]

    async def test_add_puts_records_in_front(self):
        store = MemorySecretStore(capacity=3, records=[SecretRecord(secret="a", valid_until=NOW)])

        await store.add([SecretRecord(secret="b", valid_until=NOW + DAY)])

        assert [r.secret for r in await store.get_all()] == ["b", "a"]

    async def test_returned_list_is_a_snapshot(self):
        """Test callers cannot change the buffer through a returned list."""
        store = MemorySecretStore(capacity=2, records=[SecretRecord(secret="a", valid_until=NOW)])

        snapshot = await store.get_all()
        snapshot.clear()

        assert len(await store.get_all()) == 1

    def test_secret_hidden_in_repr(self):
        assert "top-secret" not in repr(SecretRecord(secret="top-secret", valid_until=NOW))
