"""Data models for the catalog."""

import os
from dataclasses import dataclass, field
from enum import Enum
from stat import S_ISDIR


class FileKind(str, Enum):
    """Kind of filesystem entry stored in the catalog."""

    FILE = "file"
    DIRECTORY = "dir"


@dataclass
class FileRecord:
    """Represents one row of the catalog."""

    path: str  # Absolute path, unique key
    name: str = ""  # Last path segment
    kind: FileKind = FileKind.FILE
    size: int = 0
    modified_at: int = 0  # Seconds since epoch
    id: int | None = None

    @classmethod
    def from_stat(cls, path: str, st: os.stat_result) -> "FileRecord":
        """Build a record from a path and its stat result."""
        kind = FileKind.DIRECTORY if _is_dir(st) else FileKind.FILE
        return cls(
            path=path,
            name=os.path.basename(path) or path,
            kind=kind,
            size=st.st_size,
            modified_at=int(st.st_mtime),
        )


def _is_dir(st: os.stat_result) -> bool:
    return S_ISDIR(st.st_mode)


@dataclass
class WalkEntry:
    """A path discovered by the walker together with its stat result."""

    path: str
    stat: os.stat_result

    @property
    def is_dir(self) -> bool:
        return _is_dir(self.stat)


@dataclass
class WalkError:
    """A recoverable failure encountered while indexing."""

    path: str
    reason: str


@dataclass
class IndexStats:
    """Counters for a single index run."""

    root: str = ""
    added: int = 0
    updated: int = 0
    unchanged: int = 0
    deleted: int = 0
    errors: list[WalkError] = field(default_factory=list)

    @property
    def changed(self) -> int:
        """Number of new or modified entries written during the run."""
        return self.added + self.updated

    def as_dict(self) -> dict:
        return {
            "root": self.root,
            "added": self.added,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "deleted": self.deleted,
            "errors": len(self.errors),
        }
