"""
windex - incremental file indexer.

Walks a directory tree, keeps a SQLite catalog of file and directory metadata
in sync with it, and searches the catalog by partial, case-insensitive name or
path, newest entries first.

Stack:
- Python + sqlite3 (catalog storage)
- PyYAML (config file)
- FastMCP (optional MCP server)
"""

__version__ = "0.1.0"
__author__ = "MM"
