"""
Public surface of the workflow engine.

WorkflowEngine ties the runner to its collaborators: the definition
repository (where workflows come from), the completion service (text
generation) and the execution-record repository (run history).

Usage:
    engine = WorkflowEngine.from_config(workflows_dir="workflows/")
    report = await engine.execute("summarize", {"topic": "tides"}, caller_id="u-42")
    history = await engine.history("summarize")
"""

import logging
from pathlib import Path
from typing import Any

from .engine.completion import CompletionService, RoutingCompletionService
from .engine.execution_record import ExecutionRecord
from .engine.execution_result import ExecutionReport
from .engine.executor_base import ExecutorRegistry, create_default_registry
from .engine.llm_config import ConfigLoader, EngineConfig
from .engine.repositories import (
    DEFAULT_HISTORY_LIMIT,
    DefinitionRepository,
    ExecutionRecordRepository,
    InMemoryDefinitionRepository,
    InMemoryExecutionRecordRepository,
    YamlDefinitionRepository,
)
from .engine.schema import WorkflowDefinition
from .engine.validation import ValidationResult, validate_definition
from .engine.workflow_runner import WorkflowRunner

logger = logging.getLogger(__name__)


class WorkflowEngine:
    """
    Executes stored workflows and exposes their run history.

    Concurrent ``execute`` calls are safe: each gets its own context and
    record. The executor registry is shared and read-only.
    """

    def __init__(
        self,
        definitions: DefinitionRepository,
        completion_service: CompletionService | None,
        records: ExecutionRecordRepository | None = None,
        registry: ExecutorRegistry | None = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        self.definitions = definitions
        self.records = records or InMemoryExecutionRecordRepository()
        self.registry = registry or create_default_registry()
        self.history_limit = history_limit
        self.runner = WorkflowRunner(self.registry, completion_service, self.records)

    @classmethod
    def from_config(
        cls,
        config: EngineConfig | None = None,
        *,
        workflows_dir: str | Path | None = None,
        definitions: DefinitionRepository | None = None,
        records: ExecutionRecordRepository | None = None,
    ) -> "WorkflowEngine":
        """
        Wire the default collaborators.

        Args:
            config: Engine config (default: ConfigLoader().load_config())
            workflows_dir: Directory of YAML definitions, used when
                ``definitions`` is not given
            definitions: Explicit definition repository
            records: Explicit execution-record repository

        Raises:
            ConfigurationError: If the config file is invalid
        """
        if config is None:
            config = ConfigLoader().load_config()

        if definitions is None:
            if workflows_dir is not None:
                definitions = YamlDefinitionRepository(workflows_dir)
            else:
                definitions = InMemoryDefinitionRepository()

        return cls(
            definitions=definitions,
            completion_service=RoutingCompletionService(config),
            records=records,
            history_limit=config.history_limit,
        )

    async def execute(
        self,
        workflow_id: str,
        inputs: dict[str, Any] | None = None,
        caller_id: str | None = None,
    ) -> ExecutionReport:
        """
        Load a workflow by id and run it.

        A completed run updates the definition's run statistics.

        Raises:
            WorkflowNotFoundError: If the repository has no such workflow
            GraphError: If the workflow graph is invalid (nothing runs)
        """
        definition = await self.definitions.load(workflow_id)
        report = await self.execute_definition(definition, inputs, caller_id)

        if report.succeeded and report.record.completed_at is not None:
            await self.definitions.record_run(workflow_id, report.record.completed_at)

        return report

    async def execute_definition(
        self,
        definition: WorkflowDefinition,
        inputs: dict[str, Any] | None = None,
        caller_id: str | None = None,
    ) -> ExecutionReport:
        """Run a definition that is not (necessarily) stored in the repository."""
        return await self.runner.execute(definition, inputs, caller_id)

    def validate(self, definition: WorkflowDefinition) -> ValidationResult:
        """Pre-flight check; never raises for problems in the definition."""
        return validate_definition(definition, self.registry)

    async def history(
        self, workflow_id: str, limit: int | None = None
    ) -> list[ExecutionRecord]:
        """Most recent execution records for a workflow, newest first."""
        return await self.records.list_for_workflow(workflow_id, limit or self.history_limit)


__all__ = ["WorkflowEngine"]
