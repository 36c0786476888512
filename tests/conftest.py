"""Shared fixtures."""
import pytest

from prtracker.config import Config
from prtracker.models import PRRecord
from prtracker.service import PRService
from prtracker.store.local import LocalRecordStore


def make_record(pr_number: str, record_id: str | None = None, **fields) -> PRRecord:
    """Build a record with sensible defaults for tests."""
    data = {
        "id": record_id or pr_number.replace("/", "-").lower(),
        "prNumber": pr_number,
        "date": "2026-03-14",
        "requestedBy": "Halim",
        "vendor": "Acme",
        "description": "Printer toner",
        "timestamp": 1_700_000_000_000,
    }
    data.update(fields)
    return PRRecord.model_validate(data)


@pytest.fixture
def local_config(tmp_path) -> Config:
    return Config(SCRIPT_URL="", DATA_DIR=tmp_path, MAX_RETRIES=1)


@pytest.fixture
def local_store(local_config) -> LocalRecordStore:
    return LocalRecordStore(cfg=local_config)


@pytest.fixture
def service(local_store) -> PRService:
    return PRService(local_store)
