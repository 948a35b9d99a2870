"""
Sequential workflow executor (WorkflowRunner).

Lifecycle of one run:

    Validating -> Ordering -> Running -> Completed | Failed

Validating/Ordering happen before any record exists: a GraphError raises out
of execute() and nothing is persisted. Once the record is created (RUNNING),
execute() no longer raises for node failures; it finalizes the record and
returns an ExecutionReport.

Design Principles:
- One ExecutionContext per call; concurrent calls never share state
- Nodes are awaited strictly one at a time in topological order
- Fail fast: the first node error stops iteration
- Partial trace preserved on failure
- No retries at this level
"""

import logging
from typing import Any

from .completion import CompletionService
from .dag import GraphValidator
from .execution_context import ExecutionContext
from .execution_record import ExecutionError, ExecutionRecord, ExecutionStatus
from .execution_result import ExecutionReport
from .executor_base import ExecutorRegistry
from .orchestrator import NodeOrchestrator
from .recorder import ExecutionRecorder
from .repositories import ExecutionRecordRepository, InMemoryExecutionRecordRepository
from .schema import WorkflowDefinition

logger = logging.getLogger(__name__)


class WorkflowRunner:
    """
    Executes workflow definitions and persists their execution records.

    Usage:
        runner = WorkflowRunner(create_default_registry(), completion_service)
        report = await runner.execute(definition, {"topic": "tides"}, caller_id="u-1")
        response = report.to_response()
    """

    def __init__(
        self,
        registry: ExecutorRegistry,
        completion_service: CompletionService | None,
        record_repository: ExecutionRecordRepository | None = None,
    ):
        self.registry = registry
        self.completion_service = completion_service
        self.records = record_repository or InMemoryExecutionRecordRepository()
        self.orchestrator = NodeOrchestrator(registry)

    async def execute(
        self,
        definition: WorkflowDefinition,
        inputs: dict[str, Any] | None = None,
        caller_id: str | None = None,
    ) -> ExecutionReport:
        """
        Run every node of ``definition`` once, in topological order.

        Args:
            definition: Workflow to run (not modified)
            inputs: Run inputs; override the definition's default variables
            caller_id: Id of the caller, forwarded to the completion service

        Returns:
            ExecutionReport with the finalized record (completed or failed)

        Raises:
            GraphError: Cycle, dangling edge or duplicate node id (no record
                is created and no node runs)
        """
        order = GraphValidator.from_definition(definition).topological_sort()
        nodes_by_id = {node.id: node for node in definition.nodes}

        context = ExecutionContext.seeded(
            definition.variables,
            inputs,
            caller_id=caller_id,
            completion_service=self.completion_service,
        )
        record = ExecutionRecord(
            workflow_id=definition.id,
            caller_id=caller_id,
            inputs=dict(inputs or {}),
        )
        await self.records.create(record)
        logger.info(
            f"Execution {record.id} started: workflow '{definition.id}', {len(order)} node(s)"
        )

        recorder = ExecutionRecorder()
        exception: Exception | None = None
        failed_node_id: str | None = None
        for node_id in order:
            execution = await self.orchestrator.execute_node(nodes_by_id[node_id], context)
            recorder.append(execution.entry)
            if execution.error is not None:
                exception = execution.error
                failed_node_id = node_id
                break

        outputs = context.snapshot()["outputs"]

        if exception is None:
            patch = record.terminal_patch(
                ExecutionStatus.COMPLETED, recorder.finalize(), outputs=outputs
            )
            final = await self.records.update(record.id, patch)
            logger.info(
                f"Execution {record.id} completed in {final.duration_ms:.1f}ms "
                f"({len(recorder)} node(s))"
            )
            return ExecutionReport.success(final)

        error = ExecutionError(
            node_id=failed_node_id,
            error_type=type(exception).__name__,
            message=str(exception),
        )
        logger.error(
            f"Execution {record.id} failed at node '{error.node_id}': "
            f"{error.error_type}: {error.message}",
            exc_info=exception,
        )
        patch = record.terminal_patch(
            ExecutionStatus.FAILED, recorder.finalize(), outputs=outputs, error=error
        )
        final = await self.records.update(record.id, patch)
        return ExecutionReport.failure(final, exception)


__all__ = ["WorkflowRunner"]
