"""
Catalog module for windex.

This module keeps a SQLite catalog of file and directory metadata in sync with
the filesystem and answers substring queries against it.
"""

from windex.catalog.database import Catalog, CatalogError
from windex.catalog.exclusions import DEFAULT_EXCLUSIONS, ExclusionPolicy
from windex.catalog.indexer import Indexer
from windex.catalog.models import FileKind, FileRecord, IndexStats, WalkEntry, WalkError
from windex.catalog.search import SearchEngine, format_result
from windex.catalog.walker import TreeWalker

__all__ = [
    "Catalog",
    "CatalogError",
    "DEFAULT_EXCLUSIONS",
    "ExclusionPolicy",
    "FileKind",
    "FileRecord",
    "IndexStats",
    "Indexer",
    "SearchEngine",
    "TreeWalker",
    "WalkEntry",
    "WalkError",
    "format_result",
]
