"""Usage report importer.

Takes parsed DailyUsageRecord objects and writes them through the storage
gateway: create the user if it is new, then upsert the (user, date) row.

Each record is its own atomic statement. A record that the database
rejects is logged in the result and the rest of the batch continues, so
re-uploading the same file after a partial failure is always safe.

Usage:
    from reports.importer import import_csv_text

    result = await import_csv_text(content, filename="users_logs_1705276800000.csv")
    if not result.success:
        print(result.error_message)
    print(result.inserted_count, result.skipped_count, result.errors)
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from reports.csv_parser import parse_usage_csv
from storage.database import QueryFailure
from storage.models import DailyUsageRecord
from storage.repositories import DailyStatsRepository, UserRepository

logger = logging.getLogger(__name__)

NO_DATA_MESSAGE = "No valid data found in CSV file"

# Keep the response readable for huge files; counts stay exact
MAX_RECORDED_ERRORS = 20


@dataclass
class ImportResult:
    """Result of importing one file (or one batch of records)."""
    success: bool = False
    error_message: str = ""

    # Counts
    inserted_count: int = 0
    skipped_count: int = 0
    total_records: int = 0

    # Metadata
    filename: Optional[str] = None
    report_date: Optional[str] = None

    # Errors
    errors: List[str] = field(default_factory=list)
    errors_truncated: int = 0

    def add_error(self, message: str) -> None:
        if len(self.errors) < MAX_RECORDED_ERRORS:
            self.errors.append(message)
        else:
            self.errors_truncated += 1

    def error_messages(self) -> List[str]:
        """Recorded errors, plus a note for any that were not kept."""
        if not self.errors_truncated:
            return list(self.errors)
        return self.errors + [f"... and {self.errors_truncated} more errors"]


class UsageImporter:
    """Writes usage records: ensure the user, then upsert the day row."""

    def __init__(
        self,
        users: Optional[UserRepository] = None,
        daily_stats: Optional[DailyStatsRepository] = None,
    ) -> None:
        self.users = users or UserRepository()
        self.daily_stats = daily_stats or DailyStatsRepository()

    async def import_record(self, record: DailyUsageRecord) -> None:
        """Persist one record. Raises DatabaseError on failure."""
        user = await self.users.ensure_user(record.email)
        await self.daily_stats.upsert(user.id, record)

    async def import_records(
        self,
        records: Iterable[DailyUsageRecord],
    ) -> ImportResult:
        """Persist records independently and summarize the outcome.

        Statement failures (constraint violations, bad values) are recorded
        per record. Connection failures propagate: the backend is down and
        the rest of the batch would fail the same way.
        """
        result = ImportResult()

        for record in records:
            result.total_records += 1
            if not record.email:
                result.skipped_count += 1
                continue

            try:
                await self.import_record(record)
            except QueryFailure as e:
                logger.warning(f"Error inserting data for {record.email}: {e.message}")
                result.add_error(f"{record.email}: {e.message}")
                result.skipped_count += 1
                continue

            result.inserted_count += 1
            if result.report_date is None:
                result.report_date = record.date

        result.success = True
        logger.info(
            f"Import complete - inserted: {result.inserted_count}, "
            f"skipped: {result.skipped_count}, total: {result.total_records}"
        )
        return result


async def import_records(records: Iterable[DailyUsageRecord]) -> ImportResult:
    """Persist already-parsed records with the default repositories."""
    return await UsageImporter().import_records(records)


async def import_csv_text(content: str, filename: Optional[str] = None) -> ImportResult:
    """Parse a usage report and import its records.

    Returns:
        ImportResult with success=False and NO_DATA_MESSAGE when the file
        yields no records. Backend failures raise DatabaseError.
    """
    records = parse_usage_csv(content, filename=filename)
    logger.info(f"Received {len(records)} records from {filename or '<upload>'}")

    if not records:
        result = ImportResult(filename=filename, error_message=NO_DATA_MESSAGE)
        result.errors.append(NO_DATA_MESSAGE)
        return result

    result = await import_records(records)
    result.filename = filename
    result.report_date = records[0].date
    return result


async def import_csv_file(csv_path: str | Path) -> ImportResult:
    """Import a usage report from disk."""
    path = Path(csv_path)
    if not path.exists():
        return ImportResult(
            filename=path.name,
            error_message=f"File not found: {csv_path}",
            errors=[f"File not found: {csv_path}"],
        )
    content = path.read_text(encoding="utf-8-sig")
    return await import_csv_text(content, filename=path.name)
