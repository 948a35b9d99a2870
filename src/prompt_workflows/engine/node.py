"""
Pydantic base models for node configuration and node results.

- NodeConfig: strict per-kind configuration (extra='forbid'). Field names are
  snake_case in Python; the graphical editor's camelCase keys
  (``outputVariable``, ``maxTokens``) are accepted as aliases, and configs
  whose editor key differs from the field name (``prompt``, ``condition``,
  ``transformCode``, ``inputNodes``, ``mergeStrategy``, ``splitStrategy``)
  declare it as a validation alias.
- NodeResult: what an executor hands back to the orchestrator. The
  orchestrator turns it into a NodeExecutionEntry.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class NodeConfig(BaseModel):
    """Base class for node configuration validation."""

    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)

    label: str | None = Field(default=None, description="Display label set by the editor")


class OutputBindingConfig(NodeConfig):
    """Configuration shared by kinds that can bind their output to a variable."""

    output_variable: str | None = Field(
        default=None,
        description="Variable name that also receives the node output",
    )


class NodeResult(BaseModel):
    """
    Value produced by a node executor.

    ``notes`` carry diagnostics that are not errors (unsupported expression,
    unknown strategy fallback). ``meta`` carries executor-specific fields
    such as ``tokens_used`` and ``cost``.
    """

    value: Any = None
    notes: list[str] = Field(default_factory=list)
    meta: dict[str, Any] = Field(default_factory=dict)


__all__ = ["NodeConfig", "OutputBindingConfig", "NodeResult"]
