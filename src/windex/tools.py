"""MCP tools for the windex server.

This module defines the tools exposed by the MCP server:
- search_files: Case-insensitive substring search over the catalog
- index_tree: Incrementally index a directory tree
- catalog_status: Report catalog location and size
"""

import logging
from collections.abc import Callable

from fastmcp import FastMCP

from windex.catalog import Catalog, FileKind, Indexer, SearchEngine
from windex.catalog.database import SEARCH_LIMIT
from windex.catalog.search import format_timestamp
from windex.config import Config

logger = logging.getLogger(__name__)


def build_tools(config: Config, catalog: Catalog) -> list[Callable]:
    """Build the tool functions bound to a catalog.

    Args:
        config: Configuration providing the default root and exclusions
        catalog: Initialized catalog shared by all tools
    """

    def search_files(pattern: str, limit: int = SEARCH_LIMIT) -> list[dict]:
        """Search indexed files and directories by name or path.

        Matching is a case-insensitive substring match. Results are ordered by
        modification time, newest first.

        Args:
            pattern: Substring to look for (empty matches everything)
            limit: Maximum number of results to return (1-100, default: 100)

        Returns:
            List of matches with:
            - path: Full path of the entry
            - name: Last path segment
            - kind: "file" or "dir"
            - size: Size in bytes
            - modified_at: Modification time (seconds since epoch)
            - modified: Modification time as YYYY-MM-DD HH:MM:SS
        """
        limit = max(1, min(limit, SEARCH_LIMIT))
        results = SearchEngine(catalog, limit=limit).search(pattern)
        return [
            {
                "path": record.path,
                "name": record.name,
                "kind": FileKind(record.kind).value,
                "size": record.size,
                "modified_at": record.modified_at,
                "modified": format_timestamp(record.modified_at),
            }
            for record in results
        ]

    def index_tree(root: str | None = None) -> dict:
        """Index a directory tree, writing only new or modified entries.

        Entries that no longer exist under the root are removed from the
        catalog. The run is atomic: on failure nothing is written.

        Args:
            root: Directory to index (default: the configured root)

        Returns:
            Run statistics: root, added, updated, unchanged, deleted, errors
        """
        indexer = Indexer(catalog, config.exclusion_policy())
        stats = indexer.index(root or config.root)
        return stats.as_dict()

    def catalog_status() -> dict:
        """Report where the catalog lives and how many entries it holds.

        Returns:
            Status with db_path, root, entries and active exclusions
        """
        return {
            "db_path": str(config.db_path),
            "root": str(config.root),
            "entries": catalog.count(),
            "exclusions": config.exclusion_policy().patterns,
        }

    return [search_files, index_tree, catalog_status]


def register_tools(mcp: FastMCP, config: Config, catalog: Catalog) -> None:
    """Register all tools with the FastMCP server.

    Args:
        mcp: FastMCP server instance
        config: Configuration instance
        catalog: Catalog instance for queries and indexing
    """
    for tool in build_tools(config, catalog):
        mcp.tool()(tool)
        logger.debug("Registered tool %s", tool.__name__)


def create_server(config: Config, catalog: Catalog | None = None) -> FastMCP:
    """Create and configure the MCP server.

    Args:
        config: Configuration instance with all settings.
        catalog: Catalog to serve; opened from ``config.db_path`` if None.
            The caller owns it and closes it when the server stops.
    """
    if catalog is None:
        logger.info("Opening catalog at %s", config.db_path)
        catalog = Catalog(config.db_path)
        catalog.initialize()

    mcp = FastMCP(
        name="windex",
        instructions=(
            "windex keeps a catalog of file and directory metadata. Use "
            "search_files to find entries by name or path, index_tree to "
            "refresh the catalog, and catalog_status to inspect it."
        ),
    )
    register_tools(mcp, config, catalog)

    logger.info("Server configured successfully")
    return mcp
