from abc import ABC, abstractmethod
from typing import Iterable

from loguru import logger

from jwt_refresh.core.exceptions.token import SecretStoreError
from jwt_refresh.schemas import SecretRecord


def merge_records(
    incoming: Iterable[SecretRecord],
    existing: Iterable[SecretRecord],
    capacity: int,
) -> list[SecretRecord]:
    """
    Put incoming records in front of existing ones.

    The first record seen for a secret wins, the result is cut to capacity.
    """
    merged: list[SecretRecord] = []
    seen: set[str] = set()

    for record in [*incoming, *existing]:
        if record.secret in seen:
            continue

        seen.add(record.secret)
        merged.append(record)

    return merged[:capacity]


class SecretStore(ABC):
    """
    Ordered buffer of recently valid signing secrets, newest first.

    Subclasses provide storage; rotation and candidate selection are shared.
    """

    def __init__(self, capacity: int = 1):
        if capacity < 1:
            raise SecretStoreError(f"Secret buffer capacity must be at least 1, got {capacity}")

        self.capacity = capacity

    @abstractmethod
    async def get_all(self) -> list[SecretRecord]:
        """
        Read the buffer.

        Returns:
            list[SecretRecord]: Records, newest first
        """

    @abstractmethod
    async def add(self, records: list[SecretRecord]) -> None:
        """
        Insert records at the front of the buffer.

        Duplicates (by secret) are dropped in favour of the incoming record and
        the buffer is truncated to capacity.

        Args:
            records: Records to insert, newest first
        """

    async def rotate(self, secret: str, valid_until: int) -> list[SecretRecord]:
        """
        Make sure the given secret heads the buffer.

        When it does not, the secret is inserted and the record it supersedes
        gets its deadline pushed to valid_until so tokens signed with it keep
        verifying during the transition.

        Args:
            secret: Current signing secret
            valid_until: Deadline for the new head and the superseded secret

        Returns:
            list[SecretRecord]: Buffer as seen after the rotation
        """
        records = await self.get_all()

        if records and records[0].secret == secret:
            return records

        incoming = [SecretRecord(secret=secret, valid_until=valid_until)]

        if records:
            incoming.append(records[0].model_copy(update={"valid_until": valid_until}))
            logger.info(
                f"Signing secret rotated, previous secret accepted until {valid_until} "
                f"({self.__class__.__name__})"
            )

        await self.add(incoming)
        return merge_records(incoming, records, self.capacity)

    @staticmethod
    def candidate_secrets(primary: str, records: Iterable[SecretRecord], now: int) -> list[str]:
        """
        Secrets a token may be signed with right now.

        Args:
            primary: Current signing secret, always acceptable
            records: Buffered records
            now: Current unix timestamp

        Returns:
            list[str]: Primary secret followed by buffered secrets still within their deadline
        """
        candidates = [primary]

        for record in records:
            if record.valid_until > now and record.secret not in candidates:
                candidates.append(record.secret)

        return candidates
