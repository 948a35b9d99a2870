"""Definition and execution-record storage.

The engine reads definitions and writes execution records only through these
interfaces. Implementations here cover development and testing: in-memory
stores and a directory of YAML definitions.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any

from .exceptions import WorkflowNotFoundError
from .execution_record import ExecutionRecord
from .loader import discover_workflows
from .schema import WorkflowDefinition

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50

# ===========================================================================
# Definitions
# ===========================================================================


class DefinitionRepository(ABC):
    """Abstract base class for workflow definition storage."""

    @abstractmethod
    async def load(self, workflow_id: str) -> WorkflowDefinition:
        """Return the definition, raising WorkflowNotFoundError if unknown."""
        ...

    @abstractmethod
    async def record_run(self, workflow_id: str, at: datetime) -> None:
        """Increment run_count and set last_run_at after a completed run."""
        ...


class InMemoryDefinitionRepository(DefinitionRepository):
    """In-memory definition storage for development and testing."""

    def __init__(self, definitions: list[WorkflowDefinition] | None = None) -> None:
        self._definitions: dict[str, WorkflowDefinition] = {}
        self._lock = asyncio.Lock()
        for definition in definitions or []:
            self._definitions[definition.id] = definition

    async def save(self, definition: WorkflowDefinition) -> None:
        async with self._lock:
            self._definitions[definition.id] = definition

    async def load(self, workflow_id: str) -> WorkflowDefinition:
        async with self._lock:
            definition = self._definitions.get(workflow_id)
        if definition is None:
            raise WorkflowNotFoundError(workflow_id)
        return definition

    async def record_run(self, workflow_id: str, at: datetime) -> None:
        async with self._lock:
            definition = self._definitions.get(workflow_id)
            if definition is None:
                raise WorkflowNotFoundError(workflow_id)
            self._definitions[workflow_id] = definition.model_copy(
                update={"run_count": definition.run_count + 1, "last_run_at": at}
            )


class YamlDefinitionRepository(InMemoryDefinitionRepository):
    """
    Definitions read from a directory of ``.yaml`` / ``.yml`` / ``.json`` files.

    Files are read once, on first access (call ``reload()`` to rescan). Run
    statistics are kept in memory; the YAML files are never rewritten.
    """

    def __init__(self, directory: str | Path) -> None:
        super().__init__()
        self.directory = Path(directory)
        self._loaded = False

    async def reload(self) -> int:
        """
        Rescan the directory.

        Returns:
            Number of definitions loaded

        Raises:
            FileNotFoundError: If the directory does not exist
        """
        result = await asyncio.to_thread(discover_workflows, self.directory)
        if not result.is_success:
            raise FileNotFoundError(result.error)

        definitions = result.unwrap()
        async with self._lock:
            self._definitions = {definition.id: definition for definition in definitions}
            self._loaded = True
        logger.info(f"Loaded {len(definitions)} workflow(s) from {self.directory}")
        return len(definitions)

    async def _ensure_loaded(self) -> None:
        if not self._loaded:
            await self.reload()

    async def load(self, workflow_id: str) -> WorkflowDefinition:
        await self._ensure_loaded()
        return await super().load(workflow_id)

    async def record_run(self, workflow_id: str, at: datetime) -> None:
        await self._ensure_loaded()
        await super().record_run(workflow_id, at)


# ===========================================================================
# Execution records
# ===========================================================================


class ExecutionRecordRepository(ABC):
    """Abstract base class for execution record storage."""

    @abstractmethod
    async def create(self, record: ExecutionRecord) -> None:
        """Persist a new record (status RUNNING)."""
        ...

    @abstractmethod
    async def update(self, execution_id: str, patch: dict[str, Any]) -> ExecutionRecord:
        """Apply a patch and return the updated record."""
        ...

    @abstractmethod
    async def get(self, execution_id: str) -> ExecutionRecord | None:
        """Load a record by id, return None if not found."""
        ...

    @abstractmethod
    async def list_for_workflow(
        self, workflow_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[ExecutionRecord]:
        """Most recent records for a workflow, newest first."""
        ...


class InMemoryExecutionRecordRepository(ExecutionRecordRepository):
    """In-memory record storage for development and testing.

    Records are copied on the way in and out, so callers cannot mutate stored
    state.
    """

    def __init__(self) -> None:
        self._records: dict[str, ExecutionRecord] = {}
        self._lock = asyncio.Lock()

    async def create(self, record: ExecutionRecord) -> None:
        async with self._lock:
            if record.id in self._records:
                raise ValueError(f"Execution record already exists: {record.id}")
            self._records[record.id] = record.model_copy(deep=True)

    async def update(self, execution_id: str, patch: dict[str, Any]) -> ExecutionRecord:
        async with self._lock:
            record = self._records.get(execution_id)
            if record is None:
                raise KeyError(f"Execution record not found: {execution_id}")
            if record.status.is_terminal:
                raise ValueError(
                    f"Execution {execution_id} already finalized as {record.status.value}"
                )
            updated = record.apply_patch(patch)
            self._records[execution_id] = updated
            return updated.model_copy(deep=True)

    async def get(self, execution_id: str) -> ExecutionRecord | None:
        async with self._lock:
            record = self._records.get(execution_id)
            return record.model_copy(deep=True) if record else None

    async def list_for_workflow(
        self, workflow_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[ExecutionRecord]:
        async with self._lock:
            # newest insertion first so equal timestamps keep newest-first order
            records = [
                r for r in reversed(self._records.values()) if r.workflow_id == workflow_id
            ]
        records.sort(key=lambda r: r.started_at, reverse=True)
        return [r.model_copy(deep=True) for r in records[:limit]]


__all__ = [
    "DEFAULT_HISTORY_LIMIT",
    "DefinitionRepository",
    "InMemoryDefinitionRepository",
    "YamlDefinitionRepository",
    "ExecutionRecordRepository",
    "InMemoryExecutionRecordRepository",
]
