"""Prompt and Loop executors: the nodes that call the completion service.

Both interpolate a template over the run's variables and hand the text to
``context.completion_service``. Completion failures propagate unchanged; the
engine never retries a node.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar

from pydantic import AliasChoices, Field, field_validator

from .completion import CompletionResult, CompletionService
from .exceptions import ConfigurationError, NodeConfigurationError, RuntimeTypeError
from .execution_context import ExecutionContext
from .executor_base import NodeExecutor
from .interpolation import (
    interpolatable_numeric_validator,
    interpolate,
    resolve_interpolatable_numeric,
)
from .node import NodeResult, OutputBindingConfig
from .schema import NodeKind

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2000

# ===========================================================================
# Shared generation settings
# ===========================================================================


class GenerationConfig(OutputBindingConfig):
    """Model settings shared by Prompt and Loop nodes.

    ``temperature`` and ``max_tokens`` accept ``{{variable}}`` placeholders,
    resolved against the run's variables just before the first call.
    """

    model: str = Field(default=DEFAULT_MODEL, description="Model name (e.g. gpt-4o)")
    temperature: float | str = Field(
        default=DEFAULT_TEMPERATURE,
        description="Sampling temperature 0.0-2.0 (or interpolation string)",
    )
    max_tokens: int | str = Field(
        default=DEFAULT_MAX_TOKENS,
        description="Maximum tokens to generate (or interpolation string)",
    )

    _validate_temperature = field_validator("temperature", mode="before")(
        interpolatable_numeric_validator(float, ge=0.0, le=2.0)
    )
    _validate_max_tokens = field_validator("max_tokens", mode="before")(
        interpolatable_numeric_validator(int, ge=1, le=128000)
    )

    def resolve_sampling(self, node_id: str, context: ExecutionContext) -> tuple[float, int]:
        """
        Resolve temperature and max_tokens to concrete numbers.

        Raises:
            NodeConfigurationError: If a placeholder is unbound or out of range
        """
        try:
            temperature = resolve_interpolatable_numeric(
                self.temperature, float, "temperature", context.variables, ge=0.0, le=2.0
            )
            max_tokens = resolve_interpolatable_numeric(
                self.max_tokens, int, "max_tokens", context.variables, ge=1, le=128000
            )
        except ValueError as e:
            raise NodeConfigurationError(node_id, str(e)) from e
        return temperature, max_tokens


def _service(context: ExecutionContext) -> CompletionService:
    if context.completion_service is None:
        raise ConfigurationError("No completion service configured for this run")
    return context.completion_service


def _usage_meta(results: list[CompletionResult]) -> dict[str, Any]:
    return {
        "tokens_used": sum(r.tokens_used for r in results),
        "cost": sum(r.cost for r in results),
        "calls": len(results),
    }


# ===========================================================================
# Prompt
# ===========================================================================


class PromptConfig(GenerationConfig):
    """Configuration for a Prompt node."""

    template: str = Field(
        description="Prompt text with {{variable}} placeholders",
        validation_alias=AliasChoices("template", "prompt"),
    )


class PromptExecutor(NodeExecutor):
    """Interpolate the template, call the completion service once, store the text."""

    kind: ClassVar[NodeKind] = NodeKind.PROMPT
    config_type: ClassVar[type[PromptConfig]] = PromptConfig

    async def execute(
        self, node_id: str, config: PromptConfig, context: ExecutionContext
    ) -> NodeResult:
        service = _service(context)
        temperature, max_tokens = config.resolve_sampling(node_id, context)
        text = interpolate(config.template, context.variables)

        result = await service.complete(
            text, config.model, temperature, max_tokens, user=context.caller_id
        )

        self.store(node_id, result.content, config, context)
        return NodeResult(
            value=result.content,
            meta={**_usage_meta([result]), "model": result.model or config.model},
        )


# ===========================================================================
# Loop
# ===========================================================================


class LoopConfig(GenerationConfig):
    """Configuration for a Loop node.

    Each iteration sees the run's variables plus ``item_variable`` (the
    current element), ``loopIndex`` and ``isLastItem``. These are never
    written back to the run's variables.
    """

    iterator_variable: str = Field(description="Variable holding the list to iterate")
    item_variable: str = Field(default="item", description="Name bound to the current element")
    template: str = Field(
        description="Per-item prompt text with {{variable}} placeholders",
        validation_alias=AliasChoices("template", "prompt"),
    )


class LoopExecutor(NodeExecutor):
    """One completion call per list element, strictly in order."""

    kind: ClassVar[NodeKind] = NodeKind.LOOP
    config_type: ClassVar[type[LoopConfig]] = LoopConfig

    def resolve_inputs(self, config: LoopConfig, context: ExecutionContext) -> dict[str, Any]:
        inputs = super().resolve_inputs(config, context)
        inputs[config.iterator_variable] = context.get_variable(config.iterator_variable)
        return inputs

    async def execute(
        self, node_id: str, config: LoopConfig, context: ExecutionContext
    ) -> NodeResult:
        items = context.get_variable(config.iterator_variable)
        if not isinstance(items, (list, tuple)):
            raise RuntimeTypeError(
                f"Loop node '{node_id}': variable '{config.iterator_variable}' must be a list, "
                f"got {type(items).__name__}"
            )

        service = _service(context)
        temperature, max_tokens = config.resolve_sampling(node_id, context)

        results: list[CompletionResult] = []
        for index, item in enumerate(items):
            scope = context.overlay(
                {
                    config.item_variable: item,
                    "loopIndex": index,
                    "isLastItem": index == len(items) - 1,
                }
            )
            text = interpolate(config.template, scope)
            results.append(
                await service.complete(
                    text, config.model, temperature, max_tokens, user=context.caller_id
                )
            )
            logger.debug(f"Loop '{node_id}' iteration {index + 1}/{len(items)} done")

        contents = [r.content for r in results]
        self.store(node_id, contents, config, context)
        return NodeResult(value=contents, meta=_usage_meta(results))


__all__ = [
    "GenerationConfig",
    "PromptConfig",
    "PromptExecutor",
    "LoopConfig",
    "LoopExecutor",
]
