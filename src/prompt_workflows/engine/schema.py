"""
Workflow definition schema (Pydantic v2).

A workflow definition is what the graphical editor saves: default variable
bindings, typed nodes and ordering edges.

Example (YAML):
    ```yaml
    id: summarize-and-expand
    name: Summarize and expand
    variables:
      tone: friendly
    nodes:
      - id: p1
        kind: prompt
        config:
          template: "Summarize {{topic}}"
          outputVariable: summary
      - id: p2
        kind: prompt
        config:
          template: "Expand in a {{tone}} tone: {{summary}}"
    edges:
      - source: p1
        target: p2
    ```

Structural graph checks (cycles, dangling edges, duplicate ids) are NOT done
here: a definition with a broken graph still loads so that
``GraphValidator.validate`` can report every problem. Node ``config`` is kept
as a dict and validated against the kind's config model at dispatch time.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

from .load_result import LoadResult


class NodeKind(str, Enum):
    """Supported node kinds."""

    PROMPT = "prompt"
    CONDITION = "condition"
    TRANSFORM = "transform"
    LOOP = "loop"
    MERGE = "merge"
    SPLIT = "split"


class NodeDefinition(BaseModel):
    """
    Single node in a workflow graph.

    Attributes:
        id: Unique node identifier within the workflow
        kind: Node kind (case-insensitive: "Prompt" and "prompt" are equal)
        config: Kind-specific configuration (validated at dispatch)
        label: Optional display label from the editor
    """

    id: str = Field(min_length=1, max_length=200, description="Unique node identifier")
    kind: NodeKind = Field(validation_alias=AliasChoices("kind", "type"))
    config: dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("config", "data")
    )
    label: str | None = None

    model_config = {"extra": "ignore", "populate_by_name": True}

    @field_validator("kind", mode="before")
    @classmethod
    def normalize_kind(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v


class EdgeDefinition(BaseModel):
    """
    Ordering constraint between two nodes.

    Edges never gate execution: every node runs. Branching is expressed by
    later nodes reading a Condition node's output.
    """

    source: str = Field(validation_alias=AliasChoices("source", "sourceId", "sourceNodeId"))
    target: str = Field(validation_alias=AliasChoices("target", "targetId", "targetNodeId"))
    label: str | None = None

    model_config = {"extra": "ignore", "populate_by_name": True}


class WorkflowDefinition(BaseModel):
    """
    Complete workflow definition as consumed by the engine (read-only).

    Attributes:
        id: Workflow identifier used by the definition repository
        name: Human-readable name
        description: Optional description
        tags: Free-form labels from the editor
        is_public: Whether the workflow is shared publicly
        variables: Default variable bindings (run inputs override them)
        nodes: Nodes in declaration order (declaration order breaks ordering ties)
        edges: Ordering edges
        run_count: Completed runs so far (maintained by the repository)
        last_run_at: Completion time of the latest completed run
    """

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    is_public: bool = Field(default=False, validation_alias=AliasChoices("is_public", "isPublic"))
    variables: dict[str, Any] = Field(default_factory=dict)
    nodes: list[NodeDefinition] = Field(default_factory=list)
    edges: list[EdgeDefinition] = Field(default_factory=list)
    run_count: int = Field(default=0, ge=0, validation_alias=AliasChoices("run_count", "runCount"))
    last_run_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("last_run_at", "lastRunAt")
    )

    model_config = {"extra": "forbid"}

    @property
    def node_ids(self) -> list[str]:
        """Node ids in declaration order."""
        return [node.id for node in self.nodes]

    def get_node(self, node_id: str) -> NodeDefinition | None:
        """Return the first node with the given id, or None."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    @staticmethod
    def validate_dict(data: dict[str, Any]) -> LoadResult["WorkflowDefinition"]:
        """
        Validate a raw dictionary (e.g. parsed YAML) against the schema.

        Returns:
            LoadResult.success(WorkflowDefinition) if valid,
            LoadResult.failure(message) with Pydantic's error details otherwise
        """
        try:
            return LoadResult.success(WorkflowDefinition.model_validate(data))
        except ValueError as e:
            return LoadResult.failure(f"Workflow validation failed:\n{e}")


__all__ = ["NodeKind", "NodeDefinition", "EdgeDefinition", "WorkflowDefinition"]
