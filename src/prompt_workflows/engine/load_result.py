"""Success-or-message result for definition loading.

Only the loader, the schema's ``validate_dict`` and the YAML definition
repository use it, so that a bad file becomes a readable message instead of a
stack trace. Executors raise; the runner turns their exceptions into a failed
ExecutionRecord.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class LoadResult(Generic[T]):  # noqa: UP046
    """
    Either a loaded value or an error message, never both.

    Build instances through ``success`` / ``failure``. ``metadata`` carries
    side information such as the source path or per-file discovery errors.

    Usage:
        result = load_workflow_from_file("workflows/summarize.yaml")
        if result:
            definition = result.unwrap()
        else:
            logger.warning(result.error)
    """

    value: T | None = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, value: T, metadata: dict[str, Any] | None = None) -> "LoadResult[T]":
        if value is None:
            raise ValueError("Success result must have a value")
        return cls(value=value, metadata=dict(metadata or {}))

    @classmethod
    def failure(cls, error: str, metadata: dict[str, Any] | None = None) -> "LoadResult[T]":
        if not error:
            raise ValueError("Failed result must have an error message")
        return cls(error=error, metadata=dict(metadata or {}))

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    def __bool__(self) -> bool:
        return self.is_success

    def unwrap(self) -> T:
        """Return the value, raising ValueError for a failed load."""
        if self.error is not None or self.value is None:
            raise ValueError(f"Cannot unwrap failed result: {self.error}")
        return self.value


__all__ = ["LoadResult"]
