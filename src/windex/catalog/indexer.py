"""Incremental indexer that reconciles the filesystem with the catalog."""

import logging
import os
import sqlite3

from windex.catalog.database import Catalog, CatalogError
from windex.catalog.exclusions import ExclusionPolicy
from windex.catalog.models import FileRecord, IndexStats, WalkEntry, WalkError
from windex.catalog.walker import TreeWalker

logger = logging.getLogger(__name__)


class Indexer:
    """
    Indexer that keeps the catalog in step with a directory tree.

    The filesystem is always the source of truth and the stored mtime is the
    change signal: entries whose mtime is unchanged are never rewritten.

    Each call to :meth:`index` runs inside one catalog transaction, covering
    every insert and update of the walk as well as the pruning pass. If the
    run is interrupted before it finishes, the catalog is left exactly as it
    was before the run started.
    """

    def __init__(self, catalog: Catalog, exclusions: ExclusionPolicy | None = None):
        """
        Initialize the indexer.

        Args:
            catalog: Catalog to reconcile against (already initialized)
            exclusions: Exclusion policy for this run; defaults only if None
        """
        self.catalog = catalog
        self.exclusions = exclusions if exclusions is not None else ExclusionPolicy()

    def index(self, root: str | os.PathLike) -> IndexStats:
        """
        Walk ``root`` and bring its catalog entries up to date.

        Returns:
            IndexStats with added/updated/unchanged/deleted counts and the
            recoverable errors met along the way.
        """
        root = os.path.abspath(os.fspath(root))
        stats = IndexStats(root=root)
        walker = TreeWalker(root, self.exclusions)

        logger.info("Indexing %s", root)
        with self.catalog.transaction():
            for entry in walker.walk():
                self._reconcile(entry, stats)
            stats.errors.extend(walker.errors)
            self._prune(root, stats)

        logger.info(
            "Index complete: %d added, %d updated, %d deleted, %d errors",
            stats.added,
            stats.updated,
            stats.deleted,
            len(stats.errors),
        )
        return stats

    def _reconcile(self, entry: WalkEntry, stats: IndexStats) -> None:
        """Insert, update or skip a single walked entry."""
        record = FileRecord.from_stat(entry.path, entry.stat)
        try:
            stored = self.catalog.get_modified_at(record.path)
            if stored is not None and stored == record.modified_at:
                stats.unchanged += 1
                return
            self.catalog.upsert(record)
        # UnicodeEncodeError: undecodable file names cannot be bound as TEXT
        except (sqlite3.Error, UnicodeEncodeError) as e:
            if not self.catalog.in_transaction:
                raise CatalogError(f"Index run aborted, SQLite rolled it back: {e}") from e
            logger.warning("Failed to write %r: %s", record.path, e)
            stats.errors.append(WalkError(path=record.path, reason=f"write failed: {e}"))
            return

        if stored is None:
            stats.added += 1
        else:
            stats.updated += 1

    def _prune(self, root: str, stats: IndexStats) -> None:
        """Delete catalog entries under ``root`` that no longer exist.

        Only a definite "not found" deletes a row. Any other stat failure
        (permissions, I/O errors) keeps the row for the next run.
        """
        prefix = os.path.join(root, "")
        for path in self.catalog.find_by_path_prefix(prefix):
            if self.exclusions.is_excluded(path):
                self.catalog.delete_by_path(path)
                stats.deleted += 1
                continue

            try:
                os.stat(path)
            except (FileNotFoundError, NotADirectoryError):
                logger.debug("Pruning vanished entry: %s", path)
                self.catalog.delete_by_path(path)
                stats.deleted += 1
            except OSError as e:
                logger.warning("Keeping %s, cannot stat it: %s", path, e)
                stats.errors.append(WalkError(path=path, reason=f"cannot stat during prune: {e}"))
