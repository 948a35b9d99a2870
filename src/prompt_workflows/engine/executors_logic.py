"""Condition and Transform executors.

Both evaluate catalog expressions (see ``expressions``). Unsupported
expressions never fail the node: a condition yields ``False``, a transform
passes its input through, and the fallback is reported in the result notes.
"""

from typing import Any, ClassVar

from pydantic import AliasChoices, Field

from .execution_context import ExecutionContext
from .executor_base import NodeExecutor
from .expressions import evaluate_condition, evaluate_transform
from .node import NodeResult, OutputBindingConfig
from .schema import NodeKind


class ConditionConfig(OutputBindingConfig):
    """Configuration for a Condition node."""

    expression: str = Field(
        description="Condition from the expression catalog",
        validation_alias=AliasChoices("expression", "condition"),
    )


class ConditionExecutor(NodeExecutor):
    """Evaluate a condition and store the boolean outcome.

    Edges are not gated by the result; later nodes branch by reading it.
    """

    kind: ClassVar[NodeKind] = NodeKind.CONDITION
    config_type: ClassVar[type[ConditionConfig]] = ConditionConfig

    def resolve_inputs(
        self, config: ConditionConfig, context: ExecutionContext
    ) -> dict[str, Any]:
        return {"expression": config.expression}

    async def execute(
        self, node_id: str, config: ConditionConfig, context: ExecutionContext
    ) -> NodeResult:
        result = evaluate_condition(config.expression, context.variables, context.outputs)
        outcome = bool(result.value)
        self.store(node_id, outcome, config, context)
        return NodeResult(
            value=outcome,
            notes=list(result.notes),
            meta={"supported": result.supported},
        )


class TransformConfig(OutputBindingConfig):
    """Configuration for a Transform node."""

    expression: str = Field(
        description="Transform from the expression catalog",
        validation_alias=AliasChoices("expression", "transformCode"),
    )
    input_variable: str = Field(
        description="Variable to transform (falls back to the node output of that id)"
    )


class TransformExecutor(NodeExecutor):
    kind: ClassVar[NodeKind] = NodeKind.TRANSFORM
    config_type: ClassVar[type[TransformConfig]] = TransformConfig

    def resolve_inputs(
        self, config: TransformConfig, context: ExecutionContext
    ) -> dict[str, Any]:
        return {config.input_variable: context.resolve_input(config.input_variable)}

    async def execute(
        self, node_id: str, config: TransformConfig, context: ExecutionContext
    ) -> NodeResult:
        value = context.resolve_input(config.input_variable)
        result = evaluate_transform(config.expression, value, context.variables, context.outputs)
        self.store(node_id, result.value, config, context)
        return NodeResult(
            value=result.value,
            notes=list(result.notes),
            meta={"supported": result.supported},
        )


__all__ = ["ConditionConfig", "ConditionExecutor", "TransformConfig", "TransformExecutor"]
