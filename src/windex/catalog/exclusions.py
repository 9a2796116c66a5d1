"""Substring-based exclusion rules for the walker."""

from collections.abc import Iterable

# Well-known noise directories on Windows drives
DEFAULT_EXCLUSIONS = (
    "System Volume Information",
    "$RECYCLE.BIN",
    "Windows",
    "Program Files",
    "Program Files (x86)",
)


class ExclusionPolicy:
    """
    Set of path substrings that disqualify a path from indexing.

    A path is excluded when it *contains* any of the substrings, so a pattern
    also matches part of a file name (``"Windows"`` excludes
    ``/mnt/c/docs/Windows-notes.txt``). Descendants of an excluded directory
    are never visited because the walker does not descend into it.
    """

    def __init__(self, patterns: Iterable[str] = DEFAULT_EXCLUSIONS):
        self._patterns: list[str] = []
        for pattern in patterns:
            self.add_exclusion(pattern)

    @classmethod
    def with_additions(cls, additions: Iterable[str]) -> "ExclusionPolicy":
        """Build a policy from the defaults plus caller-supplied additions."""
        policy = cls()
        for pattern in additions:
            policy.add_exclusion(pattern)
        return policy

    @property
    def patterns(self) -> list[str]:
        """Active exclusion substrings, in insertion order."""
        return list(self._patterns)

    def add_exclusion(self, substring: str) -> None:
        """Append a substring to the active set (duplicates are harmless)."""
        # An empty substring would match every path
        if substring:
            self._patterns.append(substring)

    def is_excluded(self, path: str) -> bool:
        """Check whether any exclusion substring occurs within ``path``."""
        return any(pattern in path for pattern in self._patterns)

    def __repr__(self) -> str:
        return f"ExclusionPolicy({self._patterns!r})"
