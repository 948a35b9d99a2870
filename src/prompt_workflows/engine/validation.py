"""Pre-flight validation of workflow definitions.

``validate_definition`` never raises for problems in the definition; it
collects them so an editor can show everything at once.

- errors: the run would be rejected or fail for certain (graph errors,
  config that fails its kind's model, unregistered kinds)
- warnings: the run may misbehave (placeholders nothing in the definition
  binds, unsupported expressions, unknown merge/split strategies, merge
  inputs that name no node)
"""

from pydantic import BaseModel, Field

from .dag import GraphValidator
from .exceptions import GraphError, NodeConfigurationError
from .executor_base import ExecutorRegistry
from .executors_data import MergeConfig, MergeStrategy, SplitConfig, SplitStrategy
from .executors_generation import LoopConfig
from .executors_logic import ConditionConfig, TransformConfig
from .expressions import is_supported_condition, is_supported_transform
from .interpolation import find_placeholders
from .node import NodeConfig, OutputBindingConfig
from .schema import WorkflowDefinition

LOOP_BUILTINS = ("loopIndex", "isLastItem")


class ValidationResult(BaseModel):
    """Outcome of validating a definition without running it."""

    valid: bool
    order: list[str] = Field(default_factory=list)
    waves: list[list[str]] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


def _config_warnings(node_id: str, config: NodeConfig, node_ids: set[str]) -> list[str]:
    warnings: list[str] = []
    if isinstance(config, ConditionConfig) and not is_supported_condition(config.expression):
        warnings.append(
            f"Node '{node_id}': unsupported condition {config.expression!r} evaluates to false"
        )
    elif isinstance(config, TransformConfig) and not is_supported_transform(config.expression):
        warnings.append(
            f"Node '{node_id}': unsupported transform {config.expression!r} passes input through"
        )
    elif isinstance(config, MergeConfig):
        if config.strategy.strip().lower() not in MergeStrategy._value2member_map_:
            warnings.append(
                f"Node '{node_id}': unknown merge strategy {config.strategy!r} falls back to array"
            )
        for source in config.input_node_ids:
            if source not in node_ids:
                warnings.append(f"Node '{node_id}': merge input '{source}' is not a node")
    elif isinstance(config, SplitConfig):
        if config.strategy.strip().lower() not in SplitStrategy._value2member_map_:
            warnings.append(
                f"Node '{node_id}': unknown split strategy {config.strategy!r} "
                "yields the value as a single item"
            )
    return warnings


def validate_definition(
    definition: WorkflowDefinition, registry: ExecutorRegistry
) -> ValidationResult:
    """
    Check a definition's graph, node configs and placeholder bindings.

    Args:
        definition: Definition to check
        registry: Executors whose config models validate node configs

    Returns:
        ValidationResult; ``valid`` is True when there are no errors
    """
    errors: list[str] = []
    warnings: list[str] = []
    order: list[str] = []
    waves: list[list[str]] = []

    try:
        graph = GraphValidator.from_definition(definition)
        order = graph.topological_sort()
        waves = graph.execution_waves()
    except GraphError as e:
        errors.append(str(e))

    node_ids = set(definition.node_ids)
    parsed: list[tuple[str, NodeConfig]] = []
    for node in definition.nodes:
        if not registry.has(node.kind):
            errors.append(f"Node '{node.id}': no executor registered for kind '{node.kind.value}'")
            continue
        try:
            config = registry.get(node.kind).parse_config(node.id, node.config)
        except NodeConfigurationError as e:
            errors.append(str(e))
            continue
        parsed.append((node.id, config))
        warnings.extend(_config_warnings(node.id, config, node_ids))

    # Anything a run can bind without caller input
    bindable: set[str] = set(definition.variables)
    for _, config in parsed:
        if isinstance(config, OutputBindingConfig) and config.output_variable:
            bindable.add(config.output_variable)

    for node_id, config in parsed:
        local: set[str] = set()
        if isinstance(config, LoopConfig):
            local = {config.item_variable, *LOOP_BUILTINS}
        for name in find_placeholders(config.model_dump()):
            if name not in bindable and name not in local:
                warnings.append(
                    f"Node '{node_id}': placeholder '{{{{{name}}}}}' is not bound by the "
                    "definition; it stays verbatim unless supplied as a run input"
                )

    return ValidationResult(
        valid=not errors, order=order, waves=waves, errors=errors, warnings=warnings
    )


__all__ = ["LOOP_BUILTINS", "ValidationResult", "validate_definition"]
