"""Record store interface shared by the local and remote backends.

The numbering service only talks to ``RecordStore``; which backend sits
behind it is decided once by ``prtracker.store.factory.build_store``.
"""
from abc import ABC, abstractmethod

from prtracker.models import InsertResult, PRRecord


def find_by_pr_number(records: list[PRRecord], pr_number: str, exclude_id: str | None = None) -> PRRecord | None:
    """Return the first record whose PR number matches case-insensitively."""
    wanted = pr_number.strip().lower()
    for record in records:
        if exclude_id is not None and record.id == exclude_id:
            continue
        if record.normalized_pr_number == wanted:
            return record
    return None


class RecordStore(ABC):
    """Persistence for the raw collection of PR records."""

    @abstractmethod
    async def list_all(self) -> list[PRRecord]:
        """Return every stored record in no particular order.

        Returns an empty list for an empty store, never raises for it.
        """

    @abstractmethod
    async def insert(self, record: PRRecord) -> None:
        """Add one record. No uniqueness check at this layer."""

    @abstractmethod
    async def replace(self, record: PRRecord) -> None:
        """Overwrite the record with the same id. No-op if there is none."""

    @abstractmethod
    async def remove(self, record_id: str) -> None:
        """Delete the record with this id. No-op if there is none."""

    async def insert_if_absent(self, record: PRRecord) -> InsertResult:
        """Insert unless another record already uses the same PR number.

        The default is a plain read followed by an insert and is not atomic.
        Backends that can do better override it.
        """
        conflict = find_by_pr_number(await self.list_all(), record.pr_number)
        if conflict is not None:
            return InsertResult(inserted=False, conflict=conflict)
        await self.insert(record)
        return InsertResult(inserted=True)

    async def aclose(self) -> None:
        """Release resources held by the store. Default is a no-op."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
