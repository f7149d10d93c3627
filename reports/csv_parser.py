"""Usage report CSV parser.

Parses the per-user activity export from the workspace admin console into
DailyUsageRecord objects. Columns are located by header text, not by
position: exports from different days add, drop and reorder columns.

The report date is not a column. The console embeds the reporting window
in the header text, e.g. ``Total Emails [2024-01-15 - 2024-02-14]``; when
no header carries it, the ``users_logs_<epoch ms>`` filename is used.

Usage:
    from reports.csv_parser import parse_usage_csv

    records = parse_usage_csv(content, filename="users_logs_1705276800000.csv")
    for record in records:
        print(record.email, record.date, record.total_emails)
"""

import csv
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from storage.models import NOT_RECENTLY_USED, DailyUsageRecord

logger = logging.getLogger(__name__)


# ============================================================================
# COLUMN CONFIGURATION
# ============================================================================

# (substring of the lower-cased header, record field). Checked in order,
# the first matching entry claims the header.
HEADER_MATCHERS = [
    ("user", "email"),
    ("total emails", "total_emails"),
    ("emails sent", "emails_sent"),
    ("emails received", "emails_received"),
    ("files edited", "files_edited"),
    ("files viewed", "files_viewed"),
    ("gmail (imap)", "gmail_imap_last_used"),
    ("gmail (web)", "gmail_web_last_used"),
]

COUNTER_FIELDS = (
    "total_emails",
    "emails_sent",
    "emails_received",
    "files_edited",
    "files_viewed",
)

LAST_USED_FIELDS = ("gmail_imap_last_used", "gmail_web_last_used")

HEADER_DATE_PATTERN = re.compile(r"\[(\d{4}-\d{2}-\d{2})")
FILENAME_TIMESTAMP_PATTERN = re.compile(r"users_logs_(\d+)")
LEADING_INTEGER_PATTERN = re.compile(r"^[+-]?\d+")


@dataclass
class HeaderLayout:
    """Where each known column lives, and the date the file reports on."""
    column_map: Dict[str, int] = field(default_factory=dict)
    report_date: str = ""
    date_source: str = ""  # "header", "filename" or "today"

    @property
    def has_email_column(self) -> bool:
        return "email" in self.column_map


# ============================================================================
# PARSING HELPERS
# ============================================================================

def split_csv_line(line: str) -> List[str]:
    """Split one CSV line into trimmed cells.

    Standard quoting: commas inside quotes are data, a doubled quote inside
    a quoted field is a literal quote.
    """
    cells = next(csv.reader([line]), [])
    return [cell.strip() for cell in cells]


def parse_count(value: Optional[str]) -> int:
    """Parse a counter cell. Anything unusable becomes 0."""
    if value is None:
        return 0
    match = LEADING_INTEGER_PATTERN.match(value.replace(",", "").strip())
    if not match:
        return 0
    try:
        count = int(match.group(0))
    except ValueError:
        # Longer than int() will convert
        return 0
    return max(count, 0)


def date_from_filename(filename: Optional[str]) -> Optional[str]:
    """Extract the ISO date from a ``users_logs_<epoch ms>`` filename."""
    if not filename:
        return None
    match = FILENAME_TIMESTAMP_PATTERN.search(Path(filename).name)
    if not match:
        return None
    try:
        moment = datetime.fromtimestamp(int(match.group(1)) / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
    return moment.date().isoformat()


def _today_utc() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def inspect_header(
    header: List[str],
    filename: Optional[str] = None,
    today: Optional[date] = None,
) -> HeaderLayout:
    """Resolve column positions and the report date from header cells."""
    layout = HeaderLayout()

    for index, cell in enumerate(header):
        if not layout.report_date:
            date_match = HEADER_DATE_PATTERN.search(cell)
            if date_match:
                layout.report_date = date_match.group(1)
                layout.date_source = "header"

        lowered = cell.lower()
        for needle, field_name in HEADER_MATCHERS:
            if needle in lowered:
                layout.column_map[field_name] = index
                break

    if not layout.report_date:
        from_name = date_from_filename(filename)
        if from_name:
            layout.report_date = from_name
            layout.date_source = "filename"
        else:
            layout.report_date = today.isoformat() if today else _today_utc()
            layout.date_source = "today"

    return layout


def _cell(values: List[str], layout: HeaderLayout, field_name: str) -> Optional[str]:
    index = layout.column_map.get(field_name)
    if index is None or index >= len(values):
        return None
    return values[index]


# ============================================================================
# PARSE
# ============================================================================

def parse_usage_csv(
    content: str,
    filename: Optional[str] = None,
    today: Optional[date] = None,
) -> List[DailyUsageRecord]:
    """Parse a usage report into records.

    Returns an empty list (never raises) when the file has no data lines or
    no column that identifies the user.

    Args:
        content: Decoded CSV text.
        filename: Original upload name, used for the date fallback.
        today: Override for the last-resort date (tests).
    """
    lines = [
        line.rstrip("\r")
        for line in content.lstrip("\ufeff").split("\n")
        if line.strip()
    ]
    if len(lines) < 2:
        return []

    layout = inspect_header(split_csv_line(lines[0]), filename=filename, today=today)
    logger.info(
        f"CSV parser - columns found: {layout.column_map}, "
        f"date: {layout.report_date} (from {layout.date_source})"
    )

    if not layout.has_email_column:
        logger.warning("CSV parser - no user/email column; every row skipped")
        return []

    records: List[DailyUsageRecord] = []
    for line in lines[1:]:
        values = split_csv_line(line)

        email = (_cell(values, layout, "email") or "").strip()
        if not email:
            continue

        record = DailyUsageRecord(email=email, date=layout.report_date)
        for field_name in COUNTER_FIELDS:
            setattr(record, field_name, parse_count(_cell(values, layout, field_name)))
        for field_name in LAST_USED_FIELDS:
            text = (_cell(values, layout, field_name) or "").strip()
            setattr(record, field_name, text or NOT_RECENTLY_USED)
        records.append(record)

    logger.info(f"CSV parser - parsed {len(records)} records from {filename or '<upload>'}")
    return records


def parse_usage_file(path: str | Path, today: Optional[date] = None) -> List[DailyUsageRecord]:
    """Read a CSV file from disk and parse it."""
    csv_path = Path(path)
    content = csv_path.read_text(encoding="utf-8-sig")
    return parse_usage_csv(content, filename=csv_path.name, today=today)
