"""Local JSON file store used when no remote endpoint is configured."""
import asyncio
import logging
import time
import weakref
from datetime import date
from pathlib import Path
from typing import Any, Optional

import aiofiles
import aiofiles.tempfile
import orjson
from pydantic import ValidationError

from prtracker.config import Config, config
from prtracker.models import InsertResult, PRRecord
from prtracker.store.base import RecordStore, find_by_pr_number

logger = logging.getLogger(__name__)

# One lock per file and event loop, shared by every store instance on that file
_LOCKS: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, dict[Path, asyncio.Lock]]" = (
    weakref.WeakKeyDictionary()
)


def _file_lock(path: Path) -> asyncio.Lock:
    locks = _LOCKS.setdefault(asyncio.get_running_loop(), {})
    return locks.setdefault(path, asyncio.Lock())


class LocalRecordStore(RecordStore):
    """Keeps all records as one JSON array in a single file.

    Every operation reads the whole array, mutates it and writes it back.
    Only one writer process is expected.
    """

    def __init__(self, path: Optional[Path] = None, cfg: Config = config):
        self.path = (Path(path) if path is not None else cfg.storage_path).resolve()
        self.path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def _lock(self) -> asyncio.Lock:
        return _file_lock(self.path)

    async def _read_raw(self) -> Optional[list[Any]]:
        """Read the stored array. None means nothing usable is stored."""
        if not self.path.exists():
            return None
        async with aiofiles.open(self.path, "rb") as f:
            content = await f.read()
        if not content.strip():
            return None
        try:
            data = orjson.loads(content)
        except orjson.JSONDecodeError as e:
            logger.warning(f"Malformed data in {self.path}, treating store as empty: {e}")
            return None
        if not isinstance(data, list):
            logger.warning(f"Expected a JSON array in {self.path}, got {type(data).__name__}")
            return None
        return data

    async def _read(self) -> list[PRRecord]:
        records = []
        for item in await self._read_raw() or []:
            try:
                records.append(PRRecord.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping invalid record in {self.path}: {e.error_count()} errors")
        return records

    async def _write(self, records: list[PRRecord]) -> None:
        payload = orjson.dumps([r.to_wire() for r in records])
        async with aiofiles.tempfile.NamedTemporaryFile(
            "wb", dir=self.path.parent, prefix=f"{self.path.name}.", suffix=".tmp", delete=False
        ) as f:
            await f.write(payload)
            tmp_name = f.name
        Path(tmp_name).replace(self.path)

    async def list_all(self) -> list[PRRecord]:
        return await self._read()

    async def insert(self, record: PRRecord) -> None:
        async with self._lock:
            records = await self._read()
            # Newest first
            await self._write([record, *records])
        logger.debug(f"Inserted {record.pr_number} locally")

    async def insert_if_absent(self, record: PRRecord) -> InsertResult:
        async with self._lock:
            records = await self._read()
            conflict = find_by_pr_number(records, record.pr_number)
            if conflict is not None:
                return InsertResult(inserted=False, conflict=conflict)
            await self._write([record, *records])
        logger.debug(f"Inserted {record.pr_number} locally")
        return InsertResult(inserted=True)

    async def replace(self, record: PRRecord) -> None:
        async with self._lock:
            records = await self._read()
            for i, existing in enumerate(records):
                if existing.id == record.id:
                    records[i] = record
                    await self._write(records)
                    logger.debug(f"Replaced record {record.id} locally")
                    return
        logger.debug(f"No local record with id {record.id}, nothing replaced")

    async def remove(self, record_id: str) -> None:
        async with self._lock:
            records = await self._read()
            remaining = [r for r in records if r.id != record_id]
            if len(remaining) != len(records):
                await self._write(remaining)
                logger.debug(f"Removed record {record_id} locally")

    async def seed_if_empty(self, today: Optional[date] = None) -> bool:
        """Write one sample record when nothing has been stored yet."""
        if self.path.exists():
            return False
        year = (today or date.today()).year
        sample = PRRecord(
            id="1",
            pr_number=f"ADMIN/{year}/001",
            date=f"{year}-10-25",
            requested_by="Idham",
            vendor="Office Depot",
            description="Office supplies for Q4",
            timestamp=int(time.time() * 1000) - 10_000_000,
        )
        async with self._lock:
            await self._write([sample])
        logger.info(f"Seeded {self.path} with a sample record")
        return True
