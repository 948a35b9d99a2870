"""Shared test configuration for prompt-workflows tests.

Provides:
- ScriptedCompletionService: in-process completion backend that records calls
- Builders for workflow definitions
- A runner wired to the default executor registry
"""

from collections.abc import Callable
from typing import Any

import pytest

from prompt_workflows.engine.completion import CompletionResult, CompletionService
from prompt_workflows.engine.executor_base import create_default_registry
from prompt_workflows.engine.repositories import InMemoryExecutionRecordRepository
from prompt_workflows.engine.schema import WorkflowDefinition
from prompt_workflows.engine.workflow_runner import WorkflowRunner


class ScriptedCompletionService(CompletionService):
    """
    Completion backend for tests.

    Replies come from ``responses`` in order when given, otherwise from
    ``respond(text)``, otherwise ``"echo: <text>"``. ``failures`` maps a
    zero-based call index to the exception raised on that call.
    """

    def __init__(
        self,
        responses: list[str] | None = None,
        respond: Callable[[str], str] | None = None,
        failures: dict[int, Exception] | None = None,
        tokens_per_call: int = 10,
        cost_per_call: float = 0.001,
    ):
        self.responses = list(responses or [])
        self.respond = respond
        self.failures = failures or {}
        self.tokens_per_call = tokens_per_call
        self.cost_per_call = cost_per_call
        self.calls: list[dict[str, Any]] = []

    @property
    def texts(self) -> list[str]:
        return [call["text"] for call in self.calls]

    async def complete(
        self,
        text: str,
        model: str,
        temperature: float,
        max_tokens: int,
        user: str | None = None,
    ) -> CompletionResult:
        index = len(self.calls)
        self.calls.append(
            {
                "text": text,
                "model": model,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "user": user,
            }
        )
        if index in self.failures:
            raise self.failures[index]

        if self.responses:
            content = self.responses.pop(0)
        elif self.respond is not None:
            content = self.respond(text)
        else:
            content = f"echo: {text}"

        return CompletionResult(
            content=content,
            tokens_used=self.tokens_per_call,
            cost=self.cost_per_call,
            model=model,
        )


def make_definition(
    nodes: list[dict[str, Any]],
    edges: list[tuple[str, str]] | None = None,
    variables: dict[str, Any] | None = None,
    workflow_id: str = "wf-test",
) -> WorkflowDefinition:
    return WorkflowDefinition.model_validate(
        {
            "id": workflow_id,
            "name": workflow_id,
            "variables": variables or {},
            "nodes": nodes,
            "edges": [{"source": s, "target": t} for s, t in edges or []],
        }
    )


@pytest.fixture
def completion_service() -> ScriptedCompletionService:
    return ScriptedCompletionService()


@pytest.fixture
def registry():
    return create_default_registry()


@pytest.fixture
def records() -> InMemoryExecutionRecordRepository:
    return InMemoryExecutionRecordRepository()


@pytest.fixture
def runner(registry, completion_service, records) -> WorkflowRunner:
    return WorkflowRunner(registry, completion_service, records)


@pytest.fixture
def build_definition() -> Callable[..., WorkflowDefinition]:
    """Factory fixture: build_definition(nodes, edges=[(src, dst)], variables={})."""
    return make_definition
