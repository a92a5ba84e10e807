"""Project activity log.

Agents and humans record what they did as log entries. Entries are
appended to ``log.md`` beside the state file, each rendered as markdown
with a front-matter header:

    ---
    timestamp: 2026-10-19 14:03:12
    agent: implementer-1
    action: test_run
    result: success
    task: "010"
    files:
      - src/limiter.py
    ---

    Limiter passes under load.
"""

from __future__ import annotations

import enum
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from phasekeeper.state.models import utcnow

LOG_FILE_NAME = "log.md"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class LogAction(str, enum.Enum):
    """What kind of work a log entry records."""

    started_task = "started_task"
    created_file = "created_file"
    modified_file = "modified_file"
    deleted_file = "deleted_file"
    implementation_attempt = "implementation_attempt"
    test_run = "test_run"
    refactor = "refactor"
    debugging = "debugging"
    research = "research"
    completed_task = "completed_task"
    paused_task = "paused_task"


class LogResult(str, enum.Enum):
    success = "success"
    error = "error"
    partial = "partial"


class LogEntry(BaseModel):
    """One entry of the project log.

    Attributes:
        timestamp: When the work happened (UTC).
        agent: Who did it; required.
        action: Kind of work.
        result: Outcome.
        task_id: Task the entry belongs to, if any.
        files: Files touched.
        notes: Free-form markdown body.
    """

    model_config = ConfigDict(extra="forbid")

    timestamp: datetime = Field(default_factory=utcnow)
    agent: str = Field(min_length=1)
    action: LogAction
    result: LogResult
    task_id: str | None = None
    files: list[str] = Field(default_factory=list)
    notes: str = ""

    def format(self) -> str:
        """Render the entry as a markdown block ending in a newline."""
        lines = [
            "---",
            f"timestamp: {self.timestamp.strftime(TIMESTAMP_FORMAT)}",
            f"agent: {self.agent}",
            f"action: {self.action.value}",
            f"result: {self.result.value}",
        ]
        if self.task_id is not None:
            lines.append(f'task: "{self.task_id}"')
        if self.files:
            lines.append("files:")
            lines.extend(f"  - {path}" for path in self.files)
        lines.append("---")
        if self.notes:
            lines.extend(["", self.notes.rstrip("\n")])
        return "\n".join(lines) + "\n\n"
