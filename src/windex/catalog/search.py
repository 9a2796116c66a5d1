"""Search over the catalog, newest entries first."""

from datetime import datetime

from windex.catalog.database import SEARCH_LIMIT, Catalog
from windex.catalog.models import FileKind, FileRecord

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class SearchEngine:
    """Case-insensitive substring search over names and paths."""

    def __init__(self, catalog: Catalog, limit: int = SEARCH_LIMIT):
        self.catalog = catalog
        self.limit = limit

    def search(self, pattern: str) -> list[FileRecord]:
        """
        Find records whose name or path contains ``pattern``.

        Matching ignores case. An empty pattern matches every record. At most
        ``limit`` records are returned, ordered by modification time (newest
        first).
        """
        return self.catalog.search(normalize_pattern(pattern), limit=self.limit)


def normalize_pattern(pattern: str) -> str:
    """Lowercase a query pattern for matching."""
    return pattern.lower()


def format_timestamp(modified_at: int) -> str:
    """Render an epoch timestamp in local time."""
    return datetime.fromtimestamp(modified_at).strftime(TIMESTAMP_FORMAT)


def format_result(record: FileRecord) -> str:
    """Render a record as a human-readable block."""
    kind = FileKind(record.kind).value
    return (
        f"Path: {record.path}\n"
        f"Type: {kind}\n"
        f"Size: {record.size} bytes\n"
        f"Modified: {format_timestamp(record.modified_at)}\n"
    )


def render(records: list[FileRecord]) -> str:
    """Render search results, one block per record separated by blank lines."""
    return "\n".join(format_result(record) for record in records)
