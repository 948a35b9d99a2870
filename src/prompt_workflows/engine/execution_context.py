"""
Per-run mutable state threaded through node executors.

An ExecutionContext holds two namespaces:

- variables: named bindings (workflow defaults, run inputs, output variables)
- outputs: node id -> value produced by that node

One context belongs to exactly one WorkflowRunner.execute() call and is
discarded once the ExecutionRecord is finalized. It is not safe for
concurrent use; the runner awaits nodes strictly one at a time.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .completion import CompletionService


class ExecutionContext:
    """
    Variable and output state for a single workflow run.

    Attributes:
        caller_id: Id of the caller that started the run (forwarded to the
            completion service as the end-user hint)
        completion_service: Backend used by Prompt and Loop nodes
    """

    def __init__(
        self,
        variables: Mapping[str, Any] | None = None,
        caller_id: str | None = None,
        completion_service: CompletionService | None = None,
    ):
        self._variables: dict[str, Any] = dict(variables or {})
        self._outputs: dict[str, Any] = {}
        self.caller_id = caller_id
        self.completion_service = completion_service

    @classmethod
    def seeded(
        cls,
        defaults: Mapping[str, Any],
        inputs: Mapping[str, Any] | None,
        caller_id: str | None = None,
        completion_service: CompletionService | None = None,
    ) -> ExecutionContext:
        """Create a context from default variables overridden by run inputs."""
        return cls(
            {**defaults, **(inputs or {})},
            caller_id=caller_id,
            completion_service=completion_service,
        )

    # Read-only views for evaluators and executors
    @property
    def variables(self) -> Mapping[str, Any]:
        return MappingProxyType(self._variables)

    @property
    def outputs(self) -> Mapping[str, Any]:
        return MappingProxyType(self._outputs)

    def get_variable(self, name: str, default: Any = None) -> Any:
        return self._variables.get(name, default)

    def set_variable(self, name: str, value: Any) -> None:
        self._variables[name] = value

    def has_variable(self, name: str) -> bool:
        return name in self._variables

    def get_output(self, node_id: str, default: Any = None) -> Any:
        return self._outputs.get(node_id, default)

    def set_output(self, node_id: str, value: Any) -> None:
        self._outputs[node_id] = value

    def has_output(self, node_id: str) -> bool:
        return node_id in self._outputs

    def resolve_input(self, name: str) -> Any:
        """
        Look a name up as a variable first, then as a node output.

        A variable that is bound to None counts as unbound.
        """
        value = self._variables.get(name)
        if value is None:
            value = self._outputs.get(name)
        return value

    def overlay(self, extra: Mapping[str, Any]) -> dict[str, Any]:
        """
        Build a transient variable scope: current variables plus ``extra``.

        The context itself is not modified (Loop iterations use this).
        """
        return {**self._variables, **extra}

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Deep copy of both namespaces for trace capture."""
        return {
            "variables": copy.deepcopy(self._variables),
            "outputs": copy.deepcopy(self._outputs),
        }

    def __repr__(self) -> str:
        return (
            f"ExecutionContext(variables={sorted(self._variables)!r}, "
            f"outputs={sorted(self._outputs)!r})"
        )


__all__ = ["ExecutionContext"]
