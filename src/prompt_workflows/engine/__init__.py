"""Workflow engine core components using the executor pattern.

Key Components:

- WorkflowRunner: Sequential executor (returns ExecutionReport)
- ExecutionReport: Finalized record plus the exception that stopped the run
- ExecutionContext: Per-run variables and node outputs
- NodeOrchestrator: Exception handling and trace-entry creation
- NodeExecutor: Base class for node executors (six built-in kinds)
- GraphValidator: Structural checks and Kahn ordering
- CompletionService: Text-generation backend interface and providers
- LoadResult: Error monad for definition loading

Architecture:
- Executors are stateless and registered once in create_default_registry()
- Executors return NodeResult directly and raise on failure
- NodeOrchestrator turns exceptions into failed trace entries
- WorkflowRunner stops at the first failure and preserves the partial trace
- Condition/Transform expressions come from a closed catalog; nothing is eval'd
"""

from .completion import (
    AnthropicCompletionService,
    CompletionResult,
    CompletionService,
    OpenAICompletionService,
    RoutingCompletionService,
)
from .dag import GraphValidator, order_nodes
from .exceptions import (
    ConfigurationError,
    CycleDetectedError,
    DanglingEdgeError,
    DuplicateNodeIdError,
    ExpressionEvaluationError,
    ExternalServiceError,
    GraphError,
    NodeConfigurationError,
    ProviderServiceError,
    RateLimitServiceError,
    RuntimeTypeError,
    TimeoutServiceError,
    WorkflowEngineError,
    WorkflowNotFoundError,
)
from .execution_context import ExecutionContext
from .execution_record import (
    ExecutionError,
    ExecutionRecord,
    ExecutionStatus,
    NodeExecutionEntry,
)
from .execution_result import ExecutionReport
from .executor_base import ExecutorRegistry, NodeExecutor, create_default_registry
from .executors_data import (
    MergeConfig,
    MergeExecutor,
    MergeStrategy,
    SplitConfig,
    SplitExecutor,
    SplitStrategy,
)
from .executors_generation import LoopConfig, LoopExecutor, PromptConfig, PromptExecutor
from .executors_logic import (
    ConditionConfig,
    ConditionExecutor,
    TransformConfig,
    TransformExecutor,
)
from .expressions import ExpressionResult, evaluate_condition, evaluate_transform
from .interpolation import find_placeholders, interpolate
from .llm_config import ConfigLoader, EngineConfig, ModelPricing, ProviderConfig
from .load_result import LoadResult
from .loader import discover_workflows, load_workflow_from_file, load_workflow_from_yaml
from .node import NodeConfig, NodeResult
from .orchestrator import NodeExecution, NodeOrchestrator
from .recorder import ExecutionRecorder
from .repositories import (
    DefinitionRepository,
    ExecutionRecordRepository,
    InMemoryDefinitionRepository,
    InMemoryExecutionRecordRepository,
    YamlDefinitionRepository,
)
from .schema import EdgeDefinition, NodeDefinition, NodeKind, WorkflowDefinition
from .validation import ValidationResult, validate_definition
from .workflow_runner import WorkflowRunner

__all__ = [
    # Definitions
    "WorkflowDefinition",
    "NodeDefinition",
    "EdgeDefinition",
    "NodeKind",
    "LoadResult",
    "load_workflow_from_file",
    "load_workflow_from_yaml",
    "discover_workflows",
    # Graph
    "GraphValidator",
    "order_nodes",
    "ValidationResult",
    "validate_definition",
    # Execution
    "WorkflowRunner",
    "ExecutionReport",
    "ExecutionContext",
    "ExecutionRecorder",
    "NodeOrchestrator",
    "NodeExecution",
    "ExecutionRecord",
    "ExecutionStatus",
    "ExecutionError",
    "NodeExecutionEntry",
    # Executors
    "NodeExecutor",
    "NodeConfig",
    "NodeResult",
    "ExecutorRegistry",
    "create_default_registry",
    "PromptConfig",
    "PromptExecutor",
    "LoopConfig",
    "LoopExecutor",
    "ConditionConfig",
    "ConditionExecutor",
    "TransformConfig",
    "TransformExecutor",
    "MergeConfig",
    "MergeExecutor",
    "MergeStrategy",
    "SplitConfig",
    "SplitExecutor",
    "SplitStrategy",
    # Expressions and templates
    "ExpressionResult",
    "evaluate_condition",
    "evaluate_transform",
    "interpolate",
    "find_placeholders",
    # Collaborators
    "CompletionService",
    "CompletionResult",
    "OpenAICompletionService",
    "AnthropicCompletionService",
    "RoutingCompletionService",
    "DefinitionRepository",
    "InMemoryDefinitionRepository",
    "YamlDefinitionRepository",
    "ExecutionRecordRepository",
    "InMemoryExecutionRecordRepository",
    # Configuration
    "EngineConfig",
    "ProviderConfig",
    "ModelPricing",
    "ConfigLoader",
    # Errors
    "WorkflowEngineError",
    "GraphError",
    "CycleDetectedError",
    "DanglingEdgeError",
    "DuplicateNodeIdError",
    "NodeConfigurationError",
    "RuntimeTypeError",
    "ExpressionEvaluationError",
    "ExternalServiceError",
    "TimeoutServiceError",
    "RateLimitServiceError",
    "ProviderServiceError",
    "WorkflowNotFoundError",
    "ConfigurationError",
]
