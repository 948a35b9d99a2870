"""Base executor architecture for workflow nodes.

Executors implement node behavior as stateless, reusable components: a single
instance serves every node of its kind, and all per-run state lives in the
ExecutionContext passed to each call.

Key principles:
- Executors are stateless (one instance per kind)
- execute() returns a NodeResult directly (no Result wrapper)
- Exceptions indicate execution failure
- Type safety through Pydantic config models
"""

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from pydantic import BaseModel, PrivateAttr

from .exceptions import NodeConfigurationError
from .execution_context import ExecutionContext
from .interpolation import find_placeholders
from .node import NodeConfig, NodeResult, OutputBindingConfig
from .schema import NodeKind


class NodeExecutor(ABC):
    """Base class for workflow node executors.

    Subclasses must:
    1. Set class attributes (kind, config_type)
    2. Implement execute()
    3. Optionally override resolve_inputs() to report what the node read

    Example:
        class ConditionExecutor(NodeExecutor):
            kind = NodeKind.CONDITION
            config_type = ConditionConfig

            async def execute(self, node_id, config, context) -> NodeResult:
                result = evaluate_condition(config.expression, ...)
                self.store(node_id, bool(result.value), config, context)
                return NodeResult(value=bool(result.value), notes=list(result.notes))
    """

    kind: ClassVar[NodeKind]
    config_type: ClassVar[type[NodeConfig]]

    def parse_config(self, node_id: str, raw: dict[str, Any]) -> NodeConfig:
        """
        Validate a node's raw config against this kind's model.

        Raises:
            NodeConfigurationError: If the config does not match the model
        """
        try:
            return self.config_type.model_validate(raw)
        except ValueError as e:
            raise NodeConfigurationError(node_id, str(e)) from e

    def resolve_inputs(self, config: NodeConfig, context: ExecutionContext) -> dict[str, Any]:
        """
        Values the node reads, as recorded on its trace entry.

        Default: every ``{{placeholder}}`` in the config that is currently bound.
        """
        return {
            name: context.get_variable(name)
            for name in find_placeholders(config.model_dump())
            if context.has_variable(name)
        }

    @abstractmethod
    async def execute(
        self, node_id: str, config: NodeConfig, context: ExecutionContext
    ) -> NodeResult:
        """Execute node logic with a validated config.

        Implementations write their value to ``context`` (usually via
        ``store``) and return it in a NodeResult.

        Raises:
            Exception: Any exception indicates execution failure
        """

    @staticmethod
    def store(
        node_id: str, value: Any, config: NodeConfig, context: ExecutionContext
    ) -> None:
        """Set ``outputs[node_id]`` and bind the output variable when configured."""
        context.set_output(node_id, value)
        if isinstance(config, OutputBindingConfig) and config.output_variable:
            context.set_variable(config.output_variable, value)


class ExecutorRegistry(BaseModel):
    """
    Registry of executors.

    Maps node kinds to executor instances. Populated once by
    create_default_registry() and only read afterwards.
    """

    model_config = {"arbitrary_types_allowed": True}

    _executors: dict[NodeKind, NodeExecutor] = PrivateAttr(default_factory=dict)

    def register(self, executor: NodeExecutor) -> None:
        """Register executor using executor.kind as key."""
        if executor.kind in self._executors:
            raise ValueError(f"Executor already registered: {executor.kind.value}")
        self._executors[executor.kind] = executor

    @staticmethod
    def _key(kind: NodeKind | str) -> NodeKind | None:
        try:
            return NodeKind(kind)
        except ValueError:
            return None

    def get(self, kind: NodeKind | str) -> NodeExecutor:
        """Get executor by node kind."""
        key = self._key(kind)
        if key is None or key not in self._executors:
            available = [k.value for k in self._executors]
            raise ValueError(f"Unknown node kind: {kind}. Available: {available}")
        return self._executors[key]

    def list_kinds(self) -> list[str]:
        """List registered node kinds."""
        return [kind.value for kind in self._executors]

    def has(self, kind: NodeKind | str) -> bool:
        """Check if a node kind is registered."""
        return self._key(kind) in self._executors


def create_default_registry() -> ExecutorRegistry:
    """Create ExecutorRegistry with all built-in executors registered.

    Each call returns an independent registry, so tests can build their own
    without sharing global state.

    Example:
        registry = create_default_registry()
        runner = WorkflowRunner(registry=registry, completion_service=service)
    """
    from .executors_data import MergeExecutor, SplitExecutor
    from .executors_generation import LoopExecutor, PromptExecutor
    from .executors_logic import ConditionExecutor, TransformExecutor

    registry = ExecutorRegistry()

    # Generation executors (call the completion service)
    registry.register(PromptExecutor())
    registry.register(LoopExecutor())

    # Logic executors
    registry.register(ConditionExecutor())
    registry.register(TransformExecutor())

    # Data shaping executors
    registry.register(MergeExecutor())
    registry.register(SplitExecutor())

    return registry


__all__ = ["NodeExecutor", "ExecutorRegistry", "create_default_registry"]
