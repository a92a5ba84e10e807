"""Storage backends for project state documents.

YAMLBackend is the production backend: one YAML file per project, replaced
atomically on every save, with the project log appended to a markdown file
beside it. Concurrent writers from different processes are
not coordinated; the last completed rename wins.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

import structlog
import yaml

from phasekeeper.engine.errors import (
    PersistenceError,
    ProjectNotFoundError,
    StateValidationError,
)
from phasekeeper.state.log import LOG_FILE_NAME

logger = structlog.get_logger(__name__)


class Backend(Protocol):
    """Where a project's state document lives."""

    def load(self) -> dict[str, Any]:
        """Read the raw document.

        Raises:
            ProjectNotFoundError: If nothing is stored.
        """
        ...

    def save(self, data: dict[str, Any]) -> None:
        """Replace the stored document with ``data``."""
        ...

    def exists(self) -> bool: ...

    def delete(self) -> None:
        """Remove the stored document and its log."""
        ...

    def append_log(self, text: str) -> None:
        """Append rendered entries to the project log."""
        ...

    def read_log(self) -> str:
        """Return the whole project log (empty if none was written)."""
        ...

    def describe(self) -> str: ...


class YAMLBackend:
    """State document stored as a YAML file.

    Attributes:
        path: Location of the state file.
        log_path: Location of the project log, beside the state file.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.log_path = self.path.parent / LOG_FILE_NAME
        self.logger = logger.bind(component="YAMLBackend", path=str(self.path))

    def exists(self) -> bool:
        return self.path.is_file()

    def describe(self) -> str:
        return str(self.path)

    def load(self) -> dict[str, Any]:
        """Read and parse the state file.

        Raises:
            ProjectNotFoundError: If the file does not exist.
            StateValidationError: If the file is not a YAML mapping.
            PersistenceError: If the file cannot be read.
        """
        if not self.exists():
            raise ProjectNotFoundError(self.path)
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceError(self.path, "read", e) from e
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise StateValidationError(f"Malformed YAML in {self.path}", [str(e)]) from e
        if not isinstance(data, dict):
            raise StateValidationError(
                f"State file {self.path} must contain a mapping, got {type(data).__name__}"
            )
        return data

    def save(self, data: dict[str, Any]) -> None:
        """Write ``data`` to a temp file beside the target and rename it into place.

        The temp file lives in the same directory so the rename never crosses
        filesystems. On any failure the temp file is removed and the previous
        state file is left untouched.

        Raises:
            PersistenceError: If serialising, writing or renaming fails.
        """
        try:
            text = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
        except yaml.YAMLError as e:
            raise PersistenceError(self.path, "serialise", e) from e

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(self.path, "create directory for", e) from e

        tmp_path: str | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_path = tmp.name
                tmp.write(text)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except FileNotFoundError:
                    pass
            self.logger.error("state_write_failed", error=str(e))
            raise PersistenceError(self.path, "write", e) from e

        self.logger.debug("state_written", bytes=len(text))

    def delete(self) -> None:
        """Remove the state file and the project log if present.

        Raises:
            PersistenceError: If a file exists but cannot be removed.
        """
        for path in (self.path, self.log_path):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise PersistenceError(path, "delete", e) from e

    def append_log(self, text: str) -> None:
        """Append ``text`` to the log file, creating it if needed.

        Raises:
            PersistenceError: If the log cannot be written.
        """
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(text)
        except OSError as e:
            raise PersistenceError(self.log_path, "append to", e) from e
        self.logger.debug("log_appended", bytes=len(text))

    def read_log(self) -> str:
        """Read the log file.

        Raises:
            PersistenceError: If the log exists but cannot be read.
        """
        if not self.log_path.is_file():
            return ""
        try:
            return self.log_path.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceError(self.log_path, "read", e) from e


class MemoryBackend:
    """In-memory backend, mainly for tests and dry tooling."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self.data = data
        self.log = ""
        self.saves = 0

    def exists(self) -> bool:
        return self.data is not None

    def describe(self) -> str:
        return "<memory>"

    def load(self) -> dict[str, Any]:
        if self.data is None:
            raise ProjectNotFoundError(self.describe())
        # Round-trip through YAML so callers see the same types as from disk.
        return yaml.safe_load(yaml.safe_dump(self.data))

    def save(self, data: dict[str, Any]) -> None:
        self.data = yaml.safe_load(yaml.safe_dump(data, sort_keys=False))
        self.saves += 1

    def delete(self) -> None:
        self.data = None
        self.log = ""

    def append_log(self, text: str) -> None:
        self.log += text

    def read_log(self) -> str:
        return self.log
