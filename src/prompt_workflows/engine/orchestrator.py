"""Node execution orchestrator.

The orchestrator wraps executor.execute() calls to:
1. Look up the executor and validate the node config
2. Resolve the inputs recorded on the trace entry
3. Time the call
4. Catch exceptions and turn them into a failed entry
5. Return a structured NodeExecution

This is the bridge between executors (which return NodeResult or raise) and
the WorkflowRunner (which needs trace entries and a stop signal).
"""

from __future__ import annotations

import copy
import logging
import time
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel

from .exceptions import NodeConfigurationError
from .execution_context import ExecutionContext
from .execution_record import NodeExecutionEntry
from .executor_base import ExecutorRegistry, NodeExecutor
from .schema import NodeDefinition

logger = logging.getLogger(__name__)


class NodeExecution(BaseModel):
    """
    Result of executing a single node.

    ``error`` holds the exception that stopped the node; the entry always
    exists so a failed node still appears in the trace.
    """

    model_config = {"arbitrary_types_allowed": True}

    entry: NodeExecutionEntry
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class NodeOrchestrator:
    """
    Orchestrates node execution with exception handling and trace capture.

    Responsibilities:
    - Resolve the executor for the node kind
    - Validate config through the executor's config model
    - Call executor.execute()
    - Catch exceptions and build the failed entry
    - Return NodeExecution with entry and error
    """

    def __init__(self, registry: ExecutorRegistry):
        self.registry = registry

    def _executor_for(self, node: NodeDefinition) -> NodeExecutor:
        try:
            return self.registry.get(node.kind)
        except ValueError as e:
            raise NodeConfigurationError(node.id, str(e)) from e

    async def execute_node(self, node: NodeDefinition, context: ExecutionContext) -> NodeExecution:
        """
        Execute one node against the run's context.

        Never raises for node failures; the exception is carried on the
        returned NodeExecution.
        """
        started_at = datetime.now(UTC)
        start = time.perf_counter()
        inputs: dict[str, Any] = {}

        try:
            executor = self._executor_for(node)
            config = executor.parse_config(node.id, node.config)
            inputs = copy.deepcopy(executor.resolve_inputs(config, context))
            result = await executor.execute(node.id, config, context)

        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.debug(f"Node '{node.id}' failed after {duration_ms:.1f}ms: {e}")
            entry = NodeExecutionEntry(
                node_id=node.id,
                kind=node.kind.value,
                inputs=inputs,
                outputs={},
                started_at=started_at,
                duration_ms=duration_ms,
                error=str(e),
                error_type=type(e).__name__,
            )
            return NodeExecution(entry=entry, error=e)

        duration_ms = (time.perf_counter() - start) * 1000
        entry = NodeExecutionEntry(
            node_id=node.id,
            kind=node.kind.value,
            inputs=inputs,
            outputs={node.id: copy.deepcopy(result.value)},
            started_at=started_at,
            duration_ms=duration_ms,
            notes=result.notes,
            meta=result.meta,
        )
        logger.debug(f"Node '{node.id}' ({node.kind.value}) completed in {duration_ms:.1f}ms")
        return NodeExecution(entry=entry)


__all__ = ["NodeExecution", "NodeOrchestrator"]
