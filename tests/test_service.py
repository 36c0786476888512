"""Tests for PR numbering and validation."""
from datetime import date

import pytest

from conftest import make_record
from prtracker.exceptions import DuplicatePRNumberError
from prtracker.service import (
    CSV_HEADERS,
    dashboard_stats,
    export_csv,
    filter_records,
    format_pr_number,
    new_record,
)


async def seed(service, *pr_numbers):
    for i, pr_number in enumerate(pr_numbers):
        await service.store.insert(make_record(pr_number, record_id=f"r{i}", timestamp=1000 + i))


@pytest.mark.asyncio
async def test_save_rejects_duplicate_in_other_case(service):
    """Test that a different-case PR number is still a duplicate."""
    await seed(service, "ADMIN/2026/001")
    before = await service.list_all()

    with pytest.raises(DuplicatePRNumberError) as exc_info:
        await service.save(make_record("admin/2026/001", record_id="new"))

    assert exc_info.value.existing.id == "r0"
    assert await service.list_all() == before


@pytest.mark.asyncio
async def test_save_then_check_availability(service):
    """Test the availability round trip after a save."""
    record = make_record("ADMIN/2026/050")
    await service.save(record)

    taken = await service.check_availability("ADMIN/2026/050")
    assert taken.available is False
    assert taken.record == record

    free = await service.check_availability("ADMIN/2026/051")
    assert free.available is True
    assert free.record is None


@pytest.mark.asyncio
async def test_check_availability_trims_and_ignores_case(service):
    """Test normalisation of the candidate."""
    await seed(service, "ADMIN/2026/007")
    result = await service.check_availability("  admin/2026/007 ")
    assert result.available is False


@pytest.mark.asyncio
async def test_update_allows_own_number(service):
    """Test that a record may keep its own PR number on update."""
    await service.save(make_record("ADMIN/2026/005", record_id="A"))
    edited = make_record("ADMIN/2026/005", record_id="A", description="Edited")
    await service.update(edited)
    assert await service.list_all() == [edited]


@pytest.mark.asyncio
async def test_update_rejects_number_of_other_record(service):
    """Test that update cannot take another record's PR number."""
    await service.save(make_record("ADMIN/2026/001", record_id="A"))
    await service.save(make_record("ADMIN/2026/002", record_id="B"))

    with pytest.raises(DuplicatePRNumberError, match="already used by another record"):
        await service.update(make_record("Admin/2026/001", record_id="B"))

    numbers = {r.id: r.pr_number for r in await service.list_all()}
    assert numbers == {"A": "ADMIN/2026/001", "B": "ADMIN/2026/002"}


@pytest.mark.asyncio
async def test_uniqueness_holds_after_mixed_operations(service):
    """Test that successful saves and updates never leave duplicates."""
    attempts = [
        ("save", make_record("ADMIN/2026/001", record_id="a")),
        ("save", make_record("ADMIN/2026/002", record_id="b")),
        ("save", make_record("admin/2026/002", record_id="c")),
        ("update", make_record("ADMIN/2026/001", record_id="b")),
        ("update", make_record("ADMIN/2026/003", record_id="b")),
        ("save", make_record("ADMIN/2026/002", record_id="d")),
    ]
    for op, record in attempts:
        try:
            await getattr(service, op)(record)
        except DuplicatePRNumberError:
            pass

    numbers = [r.pr_number.lower() for r in await service.list_all()]
    assert len(numbers) == len(set(numbers))
    assert sorted(numbers) == ["admin/2026/001", "admin/2026/002", "admin/2026/003"]


@pytest.mark.asyncio
async def test_delete_is_idempotent(service):
    """Test that deleting twice does not raise."""
    await seed(service, "ADMIN/2026/001")
    await service.delete("r0")
    await service.delete("r0")
    assert await service.list_all() == []


@pytest.mark.asyncio
async def test_next_sequence_takes_max_plus_one(service):
    """Test sequence derivation from unordered records."""
    await seed(service, "ADMIN/2026/001", "ADMIN/2026/007", "ADMIN/2026/003")
    assert await service.next_sequence("2026") == "008"


@pytest.mark.asyncio
async def test_next_sequence_for_unused_year(service):
    """Test the first sequence of a year."""
    await seed(service, "ADMIN/2025/014")
    assert await service.next_sequence("2026") == "001"


@pytest.mark.asyncio
async def test_next_sequence_skips_malformed_segments(service):
    """Test that non-numeric trailing segments are ignored."""
    await seed(service, "ADMIN/2026/abc", "ADMIN/2026/002")
    assert await service.next_sequence("2026") == "003"


@pytest.mark.asyncio
async def test_next_sequence_is_case_insensitive_and_not_truncated(service):
    """Test lower-case prefixes and sequences past 999."""
    await seed(service, "admin/2026/999")
    assert await service.next_sequence("2026") == "1000"


@pytest.mark.asyncio
async def test_next_sequence_ignores_other_prefixes(service):
    """Test that only ADMIN/<year>/ numbers count."""
    await seed(service, "FIN/2026/040", "ADMIN/20261/050", "ADMIN/2026/004")
    assert await service.next_sequence("2026") == "005"
    assert await service.propose_pr_number("2026") == "ADMIN/2026/005"


@pytest.mark.asyncio
async def test_list_records_newest_first(service):
    """Test timestamp ordering."""
    await seed(service, "ADMIN/2026/001", "ADMIN/2026/002", "ADMIN/2026/003")
    records = await service.list_records()
    assert [r.timestamp for r in records] == [1002, 1001, 1000]


def test_format_pr_number():
    """Test building a PR number from form input."""
    assert format_pr_number(2026, " 012 ") == "ADMIN/2026/012"


def test_new_record_assigns_id_and_timestamp():
    """Test caller-side id and timestamp generation."""
    first = new_record(" ADMIN/2026/001 ", "2026-01-02", "Idham")
    second = new_record("ADMIN/2026/002", "2026-01-02", "Idham")
    assert first.pr_number == "ADMIN/2026/001"
    assert first.id != second.id
    assert first.timestamp > 0


def test_filter_records():
    """Test the dashboard search, requester and month filters."""
    records = [
        make_record("ADMIN/2026/001", requestedBy="Idham", vendor="Office Depot", date="2026-01-10"),
        make_record("ADMIN/2026/002", requestedBy="Halim", description="Laptop stand", date="2026-02-03"),
        make_record("ADMIN/2026/003", requestedBy="Halim", vendor="Depot Central", date="2026-02-20"),
    ]
    assert [r.pr_number for r in filter_records(records, search="depot")] == [
        "ADMIN/2026/001",
        "ADMIN/2026/003",
    ]
    assert len(filter_records(records, requester="Halim")) == 2
    assert len(filter_records(records, requester="All")) == 3
    assert [r.pr_number for r in filter_records(records, requester="Halim", month="2026-02", search="laptop")] == [
        "ADMIN/2026/002"
    ]


def test_dashboard_stats():
    """Test totals, current month and top requester."""
    records = [
        make_record("ADMIN/2026/001", requestedBy="Idham", date="2026-10-01"),
        make_record("ADMIN/2026/002", requestedBy="Halim", date="2026-10-05"),
        make_record("ADMIN/2026/003", requestedBy="Halim", date="2026-09-30"),
    ]
    stats = dashboard_stats(records, today=date(2026, 10, 18))
    assert stats.total_used == 3
    assert stats.this_month == 2
    assert stats.top_user == "Halim"
    assert dashboard_stats([]).top_user == "N/A"


def test_export_csv_quotes_free_text():
    """Test CSV layout and quoting of commas."""
    content = export_csv([make_record("ADMIN/2026/001", vendor="Smith, Jones & Co", description="A4 paper")])
    lines = content.splitlines()
    assert lines[0] == ",".join(CSV_HEADERS)
    assert lines[1] == 'ADMIN/2026/001,2026-03-14,Halim,"Smith, Jones & Co",A4 paper'
