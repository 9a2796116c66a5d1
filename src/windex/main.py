"""Command-line entry point for windex."""

import argparse
import logging
import sys

from windex.catalog import Catalog, CatalogError, Indexer, SearchEngine
from windex.catalog.search import render
from windex.config import Config

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with index, search and serve commands."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--db", help="Catalog file (default: ~/.windex/.winindex.db)")
    common.add_argument("--root", help="Directory to index (default: auto-detected mount point)")
    common.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="SUBSTRING",
        help="Skip paths containing SUBSTRING (repeatable)",
    )
    common.add_argument("--config", help="YAML config file (default: ~/.windex/config.yaml)")
    common.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log progress (-v) or debug details (-vv)",
    )

    parser = argparse.ArgumentParser(
        prog="windex",
        description=(
            "Incremental file indexer. Catalogs file and directory metadata "
            "in SQLite and searches it by partial, case-insensitive name or path."
        ),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "index",
        parents=[common],
        help="Index new or modified entries under the root",
    )

    search = subparsers.add_parser(
        "search",
        parents=[common],
        help="Search the catalog (newest first, at most 100 results)",
    )
    search.add_argument("pattern", help="Substring to match against names and paths")

    serve = subparsers.add_parser(
        "serve",
        parents=[common],
        help="Expose the catalog as an MCP server",
    )
    serve.add_argument(
        "--transport",
        choices=["stdio", "sse"],
        default="stdio",
        help="MCP transport (default: stdio)",
    )

    return parser


def _log_level(config: Config, verbosity: int) -> int:
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return getattr(logging, config.log_level)


def run_index(config: Config) -> int:
    """Index the configured root and print a summary."""
    catalog = Catalog(config.db_path)
    try:
        catalog.initialize()
        indexer = Indexer(catalog, config.exclusion_policy())
        stats = indexer.index(config.root)
    finally:
        catalog.close()

    print(
        f"Indexed {stats.changed} new or modified entries "
        f"({stats.added} added, {stats.updated} updated, "
        f"{stats.deleted} deleted, {len(stats.errors)} errors)."
    )
    return 0


def run_search(config: Config, pattern: str) -> int:
    """Search the catalog and print one block per result."""
    catalog = Catalog(config.db_path)
    try:
        catalog.initialize()
        results = SearchEngine(catalog).search(pattern)
    finally:
        catalog.close()

    if results:
        print(render(results))
    return 0


def run_serve(config: Config, transport: str) -> int:
    """Run the MCP server until interrupted."""
    # Imported lazily so index/search do not pay for the MCP stack
    from windex.tools import create_server

    catalog = Catalog(config.db_path)
    try:
        catalog.initialize()
        mcp = create_server(config, catalog)
        if transport == "sse":
            logger.info("Starting MCP server on port %s...", config.port)
            mcp.run(transport="sse", host="127.0.0.1", port=config.port)
        else:
            mcp.run()
    finally:
        # Closes the connections of every worker thread the server used
        catalog.close()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main function - parses arguments and dispatches the command."""
    args = build_parser().parse_args(argv)

    try:
        config = Config.load(
            root=args.root,
            db=args.db,
            exclude=args.exclude,
            config_file=args.config,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Configure logging here to avoid side effects on import
    logging.basicConfig(
        level=_log_level(config, args.verbose),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.debug("Catalog: %s", config.db_path)
    logger.debug("Root: %s", config.root)

    try:
        if args.command == "index":
            return run_index(config)
        if args.command == "search":
            return run_search(config, args.pattern)
        return run_serve(config, args.transport)
    except CatalogError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
