"""Merge and Split executors.

Strategies are kept as plain strings on the config so that a definition
saved with a strategy this engine does not know still runs. Merge falls back
to ``array`` and Split to ``[value]``, each with a note on the trace entry.
"""

import logging
import re
from enum import Enum
from typing import Any, ClassVar

from pydantic import AliasChoices, Field

from .execution_context import ExecutionContext
from .executor_base import NodeExecutor
from .interpolation import to_text
from .node import NodeResult, OutputBindingConfig
from .schema import NodeKind

logger = logging.getLogger(__name__)

# ===========================================================================
# Merge
# ===========================================================================


class MergeStrategy(str, Enum):
    """How gathered node outputs are combined."""

    CONCATENATE = "concatenate"
    """Text forms joined by a blank line; list values contribute one part per element."""

    ARRAY = "array"
    """List of values in input_node_ids order."""

    OBJECT = "object"
    """Mapping of node id to value, for ids that produced a value."""


class MergeConfig(OutputBindingConfig):
    """Configuration for a Merge node."""

    input_node_ids: list[str] = Field(
        default_factory=list,
        description="Nodes whose outputs are merged, in order",
        validation_alias=AliasChoices("input_node_ids", "inputNodeIds", "inputNodes"),
    )
    strategy: str = Field(
        default=MergeStrategy.CONCATENATE.value,
        validation_alias=AliasChoices("strategy", "mergeStrategy"),
    )


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def _text_parts(value: Any) -> list[str]:
    if isinstance(value, (list, tuple)):
        return [to_text(item) for item in value if not _is_empty(item)]
    return [to_text(value)]


class MergeExecutor(NodeExecutor):
    kind: ClassVar[NodeKind] = NodeKind.MERGE
    config_type: ClassVar[type[MergeConfig]] = MergeConfig

    def resolve_inputs(self, config: MergeConfig, context: ExecutionContext) -> dict[str, Any]:
        return {
            node_id: context.get_output(node_id)
            for node_id in config.input_node_ids
            if context.has_output(node_id)
        }

    async def execute(
        self, node_id: str, config: MergeConfig, context: ExecutionContext
    ) -> NodeResult:
        # missing and empty outputs are skipped
        present = [
            (source, context.get_output(source))
            for source in config.input_node_ids
            if not _is_empty(context.get_output(source))
        ]

        notes: list[str] = []
        try:
            strategy = MergeStrategy(config.strategy.strip().lower())
        except ValueError:
            note = f"Unknown merge strategy {config.strategy!r}; used 'array'"
            logger.warning(f"Merge node '{node_id}': {note}")
            notes.append(note)
            strategy = MergeStrategy.ARRAY

        merged: Any
        if strategy is MergeStrategy.CONCATENATE:
            merged = "\n\n".join(part for _, value in present for part in _text_parts(value))
        elif strategy is MergeStrategy.OBJECT:
            merged = dict(present)
        else:
            merged = [value for _, value in present]

        self.store(node_id, merged, config, context)
        return NodeResult(
            value=merged,
            notes=notes,
            meta={"strategy": strategy.value, "merged_count": len(present)},
        )


# ===========================================================================
# Split
# ===========================================================================


class SplitStrategy(str, Enum):
    """How a text value is divided into a list."""

    LINES = "lines"
    SENTENCES = "sentences"
    WORDS = "words"
    CUSTOM = "custom"


_SENTENCE_BOUNDARY = re.compile(r"[.!?]+")


class SplitConfig(OutputBindingConfig):
    """Configuration for a Split node."""

    input_variable: str = Field(
        description="Variable to split (falls back to the node output of that id)"
    )
    strategy: str = Field(
        default=SplitStrategy.LINES.value,
        validation_alias=AliasChoices("strategy", "splitStrategy"),
    )
    delimiter: str = Field(default=",", min_length=1, description="Used by the custom strategy")


def split_text(text: str, strategy: SplitStrategy, delimiter: str = ",") -> list[str]:
    """
    Divide ``text`` according to ``strategy``.

    Examples:
        >>> split_text("a\\n\\n b \\n", SplitStrategy.LINES)
        ['a', 'b']
        >>> split_text("Hi. Yes?! No", SplitStrategy.SENTENCES)
        ['Hi', 'Yes', 'No']
    """
    if strategy is SplitStrategy.LINES:
        return [line.strip() for line in text.split("\n") if line.strip()]
    if strategy is SplitStrategy.SENTENCES:
        return [part.strip() for part in _SENTENCE_BOUNDARY.split(text) if part.strip()]
    if strategy is SplitStrategy.WORDS:
        return text.split()
    return [part.strip() for part in text.split(delimiter)]


class SplitExecutor(NodeExecutor):
    kind: ClassVar[NodeKind] = NodeKind.SPLIT
    config_type: ClassVar[type[SplitConfig]] = SplitConfig

    def resolve_inputs(self, config: SplitConfig, context: ExecutionContext) -> dict[str, Any]:
        return {config.input_variable: context.resolve_input(config.input_variable)}

    async def execute(
        self, node_id: str, config: SplitConfig, context: ExecutionContext
    ) -> NodeResult:
        value = context.resolve_input(config.input_variable)

        try:
            strategy = SplitStrategy(config.strategy.strip().lower())
        except ValueError:
            note = f"Unknown split strategy {config.strategy!r}; value returned as a single item"
            logger.warning(f"Split node '{node_id}': {note}")
            self.store(node_id, [value], config, context)
            return NodeResult(value=[value], notes=[note])

        parts = split_text(to_text(value), strategy, config.delimiter)
        self.store(node_id, parts, config, context)
        return NodeResult(value=parts, meta={"strategy": strategy.value, "count": len(parts)})


__all__ = [
    "MergeStrategy",
    "MergeConfig",
    "MergeExecutor",
    "SplitStrategy",
    "SplitConfig",
    "split_text",
    "SplitExecutor",
]
