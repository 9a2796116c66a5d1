"""Configuration module for windex.

Settings are merged from, lowest to highest precedence: built-in defaults, an
optional YAML file (``~/.windex/config.yaml``), environment variables, and
explicit arguments (usually command-line flags).
"""

import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from windex.catalog.exclusions import ExclusionPolicy

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def windex_home() -> Path:
    """Directory holding the catalog and config file."""
    return Path.home() / ".windex"


def default_root() -> str:
    """Pick the mount point to index when none is configured."""
    if os.path.exists("/mnt/"):
        return "/mnt/"
    if os.name == "nt":
        return "C:\\"
    return "/"


@dataclass
class Config:
    """Application configuration."""

    root: Path
    db_path: Path
    exclude: list[str] = field(default_factory=list)
    port: int = 8080
    log_level: str = "WARNING"

    @classmethod
    def load(
        cls,
        root: str | None = None,
        db: str | None = None,
        exclude: Iterable[str] | None = None,
        config_file: str | None = None,
    ) -> "Config":
        """Load configuration from defaults, YAML file, environment and arguments.

        Args:
            root: Root directory to index; overrides every other source.
            db: Catalog file location; overrides every other source.
            exclude: Extra exclusion substrings, appended after the others.
            config_file: YAML file to read instead of the default location.
        """
        if config_file is None:
            config_file = os.getenv("WINDEX_CONFIG", str(windex_home() / "config.yaml"))
        settings = load_config_file(Path(config_file).expanduser())

        root_str = root or os.getenv("WINDEX_ROOT") or settings.get("root") or default_root()
        db_str = (
            db
            or os.getenv("WINDEX_DB")
            or settings.get("db")
            or str(windex_home() / ".winindex.db")
        )

        exclusions = list(settings.get("exclude", []))
        env_exclude = os.getenv("WINDEX_EXCLUDE", "")
        exclusions.extend(part for part in env_exclude.split(os.pathsep) if part)
        exclusions.extend(exclude or [])

        port_str = str(os.getenv("WINDEX_PORT") or settings.get("port") or 8080)
        try:
            port = int(port_str)
            if not 1 <= port <= 65535:
                raise ValueError(f"Port must be between 1 and 65535, got {port}")
        except ValueError as e:
            raise ValueError(f"Invalid port value '{port_str}': {e}") from e

        log_level = str(
            os.getenv("WINDEX_LOG_LEVEL") or settings.get("log_level") or "WARNING"
        ).upper()
        if log_level not in LOG_LEVELS:
            raise ValueError(
                f"Invalid WINDEX_LOG_LEVEL value '{log_level}': "
                f"expected one of {', '.join(LOG_LEVELS)}"
            )

        return cls(
            root=Path(root_str).expanduser(),
            db_path=Path(db_str).expanduser(),
            exclude=exclusions,
            port=port,
            log_level=log_level,
        )

    def exclusion_policy(self) -> ExclusionPolicy:
        """Build the exclusion policy for one run: defaults plus configured additions."""
        return ExclusionPolicy.with_additions(self.exclude)


def load_config_file(path: Path) -> dict:
    """
    Read settings from a YAML config file.

    A missing file yields no settings. Expected layout::

        root: /mnt/
        db: ~/.windex/.winindex.db
        exclude:
          - node_modules
          - .git

    Raises:
        ValueError: If the file is not valid YAML or has unexpected types.
    """
    if not path.is_file():
        return {}

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid config file {path}: {e}") from e
    except OSError as e:
        raise ValueError(f"Cannot read config file {path}: {e}") from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid config file {path}: expected a mapping at top level")

    exclude = raw.get("exclude", [])
    if exclude is None:
        exclude = []
    if not isinstance(exclude, list):
        raise ValueError(f"Invalid config file {path}: 'exclude' must be a list")
    raw["exclude"] = [str(item) for item in exclude]

    for key in ("root", "db", "log_level"):
        if key in raw and raw[key] is not None and not isinstance(raw[key], str):
            raise ValueError(f"Invalid config file {path}: '{key}' must be a string")

    return raw
