"""Execution record and trace entry models."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ExecutionStatus(str, Enum):
    """
    Run lifecycle states.

    A record is created RUNNING and transitions exactly once to COMPLETED or
    FAILED.
    """

    RUNNING = "running"
    """Created; nodes are executing."""

    COMPLETED = "completed"
    """Every node succeeded."""

    FAILED = "failed"
    """A node raised; later nodes never ran."""

    @property
    def is_terminal(self) -> bool:
        return self is not ExecutionStatus.RUNNING


class NodeExecutionEntry(BaseModel):
    """
    Trace entry for one executed node.

    ``outputs`` is ``{node_id: value}`` on success and ``{}`` on failure.
    ``notes`` holds non-error diagnostics (unsupported expressions, strategy
    fallbacks). ``meta`` holds executor-specific fields (tokens_used, cost).
    """

    node_id: str
    kind: str
    inputs: dict[str, Any] = Field(default_factory=dict)
    outputs: dict[str, Any] = Field(default_factory=dict)
    started_at: datetime
    duration_ms: float = 0.0
    error: str | None = None
    error_type: str | None = None
    notes: list[str] = Field(default_factory=list)
    meta: dict[str, Any] = Field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.error is None


class ExecutionError(BaseModel):
    """User-facing description of the failure that stopped a run."""

    node_id: str | None = None
    error_type: str
    message: str


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ExecutionRecord(BaseModel):
    """
    Persisted record of one workflow run.

    Written twice through the ExecutionRecordRepository: created in RUNNING
    state before the first node executes, then updated at the terminal state.
    A crash in between leaves a durable RUNNING record.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    workflow_id: str
    caller_id: str | None = None
    status: ExecutionStatus = ExecutionStatus.RUNNING
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: datetime | None = None
    duration_ms: float | None = None
    inputs: dict[str, Any] = Field(default_factory=dict)
    outputs: dict[str, Any] = Field(default_factory=dict)
    entries: list[NodeExecutionEntry] = Field(default_factory=list)
    error: ExecutionError | None = None

    def terminal_patch(
        self,
        status: ExecutionStatus,
        entries: list[NodeExecutionEntry],
        outputs: dict[str, Any] | None = None,
        error: ExecutionError | None = None,
    ) -> dict[str, Any]:
        """
        Build the update patch for the terminal transition.

        Raises:
            ValueError: If the record is already terminal or status is RUNNING
        """
        if self.status.is_terminal:
            raise ValueError(f"Execution {self.id} already finalized as {self.status.value}")
        if not status.is_terminal:
            raise ValueError("Terminal status required")

        completed_at = _utcnow()
        return {
            "status": status,
            "completed_at": completed_at,
            "duration_ms": (completed_at - self.started_at).total_seconds() * 1000,
            "outputs": outputs or {},
            "entries": entries,
            "error": error,
        }

    def apply_patch(self, patch: dict[str, Any]) -> ExecutionRecord:
        """Return a copy of this record with ``patch`` applied and validated."""
        return ExecutionRecord.model_validate({**self.model_dump(), **patch})


__all__ = [
    "ExecutionStatus",
    "NodeExecutionEntry",
    "ExecutionError",
    "ExecutionRecord",
]
