"""
ExecutionReport: what WorkflowRunner.execute() hands back to callers.

A node failure does not raise out of the runner. The report always carries the
finalized ExecutionRecord, so the partial trace of a failed run is available
exactly like the full trace of a completed one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .execution_record import ExecutionRecord, ExecutionStatus, NodeExecutionEntry


@dataclass
class ExecutionReport:
    """
    Outcome of one workflow run.

    Example Usage:
        report = await runner.execute(definition, {"topic": "tides"})
        if report.succeeded:
            print(report.outputs["p2"])
        else:
            print(report.failed_node_id, report.record.error.message)
    """

    record: ExecutionRecord
    exception: Exception | None = None

    @staticmethod
    def success(record: ExecutionRecord) -> ExecutionReport:
        return ExecutionReport(record=record)

    @staticmethod
    def failure(record: ExecutionRecord, exception: Exception) -> ExecutionReport:
        """Failed run; ``record.entries`` ends with the failing node."""
        return ExecutionReport(record=record, exception=exception)

    @property
    def status(self) -> ExecutionStatus:
        return self.record.status

    @property
    def succeeded(self) -> bool:
        return self.record.status is ExecutionStatus.COMPLETED

    @property
    def execution_id(self) -> str:
        return self.record.id

    @property
    def outputs(self) -> dict[str, Any]:
        return self.record.outputs

    @property
    def entries(self) -> list[NodeExecutionEntry]:
        return self.record.entries

    @property
    def failed_node_id(self) -> str | None:
        return self.record.error.node_id if self.record.error else None

    def to_response(self, include_trace: bool = False) -> dict[str, Any]:
        """
        Format the report as a JSON-compatible dict.

        Examples:
            {"execution_id": "...", "status": "completed", "outputs": {...}}
            {"execution_id": "...", "status": "failed",
             "error": {"node_id": "n3", "error_type": "ProviderServiceError", "message": "..."}}
        """
        response: dict[str, Any] = {
            "execution_id": self.record.id,
            "status": self.record.status.value,
        }

        if self.succeeded:
            response["outputs"] = self.record.outputs
        elif self.record.error is not None:
            response["error"] = self.record.error.model_dump()

        if self.record.duration_ms is not None:
            response["duration_ms"] = self.record.duration_ms

        if include_trace:
            response["trace"] = [entry.model_dump(mode="json") for entry in self.record.entries]

        return response


__all__ = ["ExecutionReport"]
