"""Usage report ingestion for Usage Stats.

1. Parse admin-console CSV exports into DailyUsageRecord objects
2. Import them with per-(user, date) upserts

Example:
    >>> from reports import parse_usage_csv, import_csv_text
    >>>
    >>> records = parse_usage_csv(content, filename="users_logs_1705276800000.csv")
    >>> result = await import_csv_text(content, filename="users_logs_1705276800000.csv")
    >>> print(result.inserted_count)
"""

from reports.csv_parser import (
    HEADER_MATCHERS,
    HeaderLayout,
    inspect_header,
    parse_count,
    parse_usage_csv,
    parse_usage_file,
    split_csv_line,
)
from reports.importer import (
    MAX_RECORDED_ERRORS,
    NO_DATA_MESSAGE,
    ImportResult,
    UsageImporter,
    import_csv_file,
    import_csv_text,
    import_records,
)

__all__ = [
    # Parser
    "HEADER_MATCHERS",
    "HeaderLayout",
    "inspect_header",
    "parse_count",
    "parse_usage_csv",
    "parse_usage_file",
    "split_csv_line",
    # Importer
    "MAX_RECORDED_ERRORS",
    "NO_DATA_MESSAGE",
    "ImportResult",
    "UsageImporter",
    "import_csv_file",
    "import_csv_text",
    "import_records",
]
