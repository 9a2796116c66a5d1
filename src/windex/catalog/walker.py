"""Iterative directory walker for building the catalog."""

import logging
import os
from collections.abc import Iterator

from windex.catalog.exclusions import ExclusionPolicy
from windex.catalog.models import WalkEntry, WalkError

logger = logging.getLogger(__name__)


class TreeWalker:
    """
    Walk a directory tree without recursion.

    Pending directories are kept on an explicit stack (the frontier), so the
    depth of the tree is bounded only by memory. A directory that cannot be
    opened, or an entry that cannot be stat'ed, is recorded in ``errors`` and
    skipped; the walk itself never aborts on a single bad entry.

    Symbolic links are yielded with their target's metadata but never
    descended into, so every real directory is expanded under its own path.

    Example tree for root ``/mnt``::

        /mnt/
        ├── c/
        │   ├── Users/
        │   │   └── notes.txt
        │   └── Windows/          <- excluded, never entered
        └── d/

    yields ``/mnt/c``, ``/mnt/c/Users``, ``/mnt/c/Users/notes.txt`` and
    ``/mnt/d`` in unspecified order. The root itself is not yielded.
    """

    def __init__(self, root: str, exclusions: ExclusionPolicy):
        self.root = os.fspath(root)
        self.exclusions = exclusions
        self.errors: list[WalkError] = []

    def walk(self) -> Iterator[WalkEntry]:
        """Yield a WalkEntry for every non-excluded descendant of the root."""
        self.errors = []
        frontier: list[str] = [self.root]
        # (st_dev, st_ino) of directories already queued; stops bind-mount loops
        seen: set[tuple[int, int]] = set()
        try:
            seen.add(_dir_key(os.stat(self.root)))
        except OSError:
            pass  # Reported when scandir fails below

        try:
            while frontier:
                current = frontier.pop()
                try:
                    with os.scandir(current) as it:
                        # scandir never yields "." or ".."
                        names = [entry.name for entry in it]
                except OSError as e:
                    self._record(current, f"cannot open directory: {e}")
                    continue

                for name in names:
                    path = os.path.join(current, name)
                    if self.exclusions.is_excluded(path):
                        logger.debug("Excluded: %s", path)
                        continue

                    try:
                        st = os.stat(path)
                    except OSError as e:
                        self._record(path, f"cannot stat: {e}")
                        continue

                    entry = WalkEntry(path=path, stat=st)
                    yield entry

                    # Links are cataloged but never entered
                    if not entry.is_dir or os.path.islink(path):
                        continue
                    key = _dir_key(st)
                    if key[1] and key in seen:
                        logger.debug("Skipping already visited directory: %s", path)
                        continue
                    seen.add(key)
                    frontier.append(path)
        finally:
            frontier.clear()
            seen.clear()

    def _record(self, path: str, reason: str) -> None:
        logger.warning("Skipping %s (%s)", path, reason)
        self.errors.append(WalkError(path=path, reason=reason))


def _dir_key(st: os.stat_result) -> tuple[int, int]:
    # st_ino is 0 on filesystems without inode numbers; such keys never match
    return (st.st_dev, st.st_ino)
