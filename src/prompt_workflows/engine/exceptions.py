"""Workflow engine exceptions.

Two families matter to callers:

- GraphError subclasses reject a workflow definition before any run exists.
- Everything else is raised while a run is in progress and fails that run
  at the offending node (fail-fast, no partial continuation).

Unsupported expressions are deliberately absent from this module: they are a
defined fallback, reported as notes on the node's trace entry.
"""

from __future__ import annotations


class WorkflowEngineError(Exception):
    """Base class for all engine errors."""


# ===========================================================================
# Graph (definition) errors
# ===========================================================================


class GraphError(WorkflowEngineError):
    """Structural problem with a workflow graph. No run is created."""


class CycleDetectedError(GraphError):
    """
    Workflow graph contains at least one cycle.

    Attributes:
        node_ids: Nodes that could not be ordered (declaration order)
    """

    def __init__(self, node_ids: list[str]):
        self.node_ids = node_ids
        super().__init__(
            f"Cyclic dependency detected in workflow. Unresolved nodes: {', '.join(node_ids)}"
        )

    def __repr__(self) -> str:
        """Developer-friendly representation."""
        return f"CycleDetectedError(node_ids={self.node_ids!r})"


class DanglingEdgeError(GraphError):
    """Edge references a node id that does not exist in the definition."""

    def __init__(self, source: str, target: str, missing: str):
        self.source = source
        self.target = target
        self.missing = missing
        super().__init__(f"Edge '{source}' -> '{target}' references unknown node '{missing}'")


class DuplicateNodeIdError(GraphError):
    """Two or more nodes share the same id."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Duplicate node id: '{node_id}'")


# ===========================================================================
# Run-time errors
# ===========================================================================


class NodeConfigurationError(WorkflowEngineError):
    """Node configuration is invalid for its kind, or the kind is unknown."""

    def __init__(self, node_id: str, message: str):
        self.node_id = node_id
        super().__init__(f"Invalid configuration for node '{node_id}': {message}")


class RuntimeTypeError(WorkflowEngineError, TypeError):
    """A value has the wrong type at run time (e.g. Loop iterator not a list)."""


class ExpressionEvaluationError(WorkflowEngineError):
    """A supported expression failed on its input (e.g. fromJson on invalid JSON)."""


class ExternalServiceError(WorkflowEngineError):
    """
    Completion-service failure.

    Raised by CompletionService implementations after their own retry policy
    is exhausted. The engine propagates it unchanged and fails the run.

    Attributes:
        provider: Provider name (openai, anthropic, ...)
        retryable: Whether the failure is transient in nature
    """

    def __init__(self, message: str, provider: str = "unknown", retryable: bool = False):
        self.provider = provider
        self.retryable = retryable
        super().__init__(message)

    def __repr__(self) -> str:
        """Developer-friendly representation."""
        return (
            f"{type(self).__name__}(provider={self.provider!r}, "
            f"retryable={self.retryable}, message={str(self)!r})"
        )


class TimeoutServiceError(ExternalServiceError):
    """Completion request timed out."""

    def __init__(self, message: str, provider: str = "unknown"):
        super().__init__(message, provider=provider, retryable=True)


class RateLimitServiceError(ExternalServiceError):
    """Provider rejected the request due to rate limiting."""

    def __init__(self, message: str, provider: str = "unknown"):
        super().__init__(message, provider=provider, retryable=True)


class ProviderServiceError(ExternalServiceError):
    """Provider returned an error response or an unusable payload."""


# ===========================================================================
# Collaborator / setup errors
# ===========================================================================


class WorkflowNotFoundError(WorkflowEngineError, KeyError):
    """Definition repository has no workflow with the requested id."""

    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        super().__init__(f"Workflow not found: {workflow_id}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return f"Workflow not found: {self.workflow_id}"


class ConfigurationError(WorkflowEngineError):
    """Engine configuration file is missing required data or is malformed."""


__all__ = [
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
