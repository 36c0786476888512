"""PR numbering and validation on top of a record store."""
import csv
import io
import logging
import re
import time
import uuid
from collections import Counter
from datetime import date
from typing import Iterable, Optional

from prtracker.exceptions import DuplicatePRNumberError
from prtracker.models import PR_PREFIX, Availability, DashboardStats, PRRecord
from prtracker.store.base import RecordStore, find_by_pr_number

logger = logging.getLogger(__name__)

CSV_HEADERS = ["PR Number", "Date", "Requested By", "Vendor", "Description"]

# Leading integer of a segment, the way a lenient parseInt reads "007" or "12a"
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _parse_sequence(segment: str) -> Optional[int]:
    match = _LEADING_INT.match(segment)
    return int(match.group(1)) if match else None


def format_pr_number(year: str | int, sequence: str | int) -> str:
    """Build ``ADMIN/<year>/<sequence>`` from form input."""
    return f"{PR_PREFIX}/{str(year).strip()}/{str(sequence).strip()}"


def new_record(
    pr_number: str,
    pr_date: str,
    requested_by: str,
    vendor: str = "",
    description: str = "",
) -> PRRecord:
    """Create a record with a fresh id and the current timestamp."""
    return PRRecord(
        id=uuid.uuid4().hex,
        pr_number=pr_number.strip(),
        date=pr_date,
        requested_by=requested_by,
        vendor=vendor,
        description=description,
        timestamp=int(time.time() * 1000),
    )


def filter_records(
    records: Iterable[PRRecord],
    search: str = "",
    requester: Optional[str] = None,
    month: str = "",
) -> list[PRRecord]:
    """Dashboard filter: free-text search, requester and ``YYYY-MM`` month."""
    term = (search or "").lower()
    result = []
    for record in records:
        if term and not any(
            term in (value or "").lower()
            for value in (record.pr_number, record.vendor, record.description)
        ):
            continue
        if requester and requester != "All" and record.requested_by != requester:
            continue
        if month and not record.date.startswith(month):
            continue
        result.append(record)
    return result


def dashboard_stats(records: list[PRRecord], today: Optional[date] = None) -> DashboardStats:
    """Totals shown on the dashboard."""
    current_month = (today or date.today()).strftime("%Y-%m")
    counts = Counter(r.requested_by for r in records)
    # most_common keeps first-seen order on ties
    top_user = counts.most_common(1)[0][0] if counts else "N/A"
    return DashboardStats(
        total_used=len(records),
        this_month=sum(1 for r in records if r.date.startswith(current_month)),
        top_user=top_user,
    )


def export_csv(records: Iterable[PRRecord]) -> str:
    """Render records as CSV with the dashboard's columns."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for r in records:
        writer.writerow([r.pr_number, r.date, r.requested_by, r.vendor, r.description])
    return buffer.getvalue()


class PRService:
    """Numbering, availability and uniqueness checks over a ``RecordStore``.

    Every check re-reads the store. Nothing is cached, and the read and the
    write that follows are separate calls, so two clients saving the same
    number at the same time can both succeed against a remote store.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    async def list_all(self) -> list[PRRecord]:
        return await self.store.list_all()

    async def list_records(self) -> list[PRRecord]:
        """All records, newest first."""
        records = await self.store.list_all()
        return sorted(records, key=lambda r: r.timestamp, reverse=True)

    async def check_availability(self, candidate: str) -> Availability:
        """Look up a candidate PR number, ignoring case and surrounding spaces."""
        found = find_by_pr_number(await self.store.list_all(), candidate)
        if found is not None:
            return Availability(available=False, record=found)
        return Availability(available=True)

    async def next_sequence(self, year: str | int) -> str:
        """Next free sequence for a year, zero-padded to at least three digits."""
        prefix = f"{PR_PREFIX}/{year}/".upper()
        max_seq = 0
        for record in await self.store.list_all():
            if not record.pr_number or not record.pr_number.upper().startswith(prefix):
                continue
            value = _parse_sequence(record.pr_number.split("/")[-1])
            if value is not None and value > max_seq:
                max_seq = value
        return str(max_seq + 1).zfill(3)

    async def propose_pr_number(self, year: str | int) -> str:
        return format_pr_number(year, await self.next_sequence(year))

    async def save(self, record: PRRecord) -> None:
        """Store a new record unless its PR number is already used."""
        result = await self.store.insert_if_absent(record)
        if not result.inserted:
            logger.info(f"Rejected duplicate PR number {record.pr_number}")
            raise DuplicatePRNumberError(record.pr_number, result.conflict)
        logger.info(f"Saved PR {record.pr_number} ({record.id})")

    async def update(self, record: PRRecord) -> None:
        """Replace a record, allowing it to keep its own PR number."""
        records = await self.store.list_all()
        duplicate = find_by_pr_number(records, record.pr_number, exclude_id=record.id)
        if duplicate is not None:
            logger.info(f"Rejected update of {record.id}: {record.pr_number} is taken by {duplicate.id}")
            raise DuplicatePRNumberError(
                record.pr_number,
                duplicate,
                message=f'PR Number "{record.pr_number}" is already used by another record.',
            )
        await self.store.replace(record)
        logger.info(f"Updated PR {record.pr_number} ({record.id})")

    async def delete(self, record_id: str) -> None:
        await self.store.remove(record_id)
        logger.info(f"Deleted record {record_id}")
