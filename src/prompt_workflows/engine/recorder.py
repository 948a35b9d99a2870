"""Ordered accumulation of node trace entries for one run."""

from .execution_record import NodeExecutionEntry


class ExecutionRecorder:
    """
    Append-only trace of NodeExecutionEntry items.

    No deduplication: every append is kept, in insertion order.
    """

    def __init__(self) -> None:
        self._entries: list[NodeExecutionEntry] = []

    def append(self, entry: NodeExecutionEntry) -> None:
        self._entries.append(entry)

    @property
    def entries(self) -> tuple[NodeExecutionEntry, ...]:
        return tuple(self._entries)

    @property
    def last(self) -> NodeExecutionEntry | None:
        return self._entries[-1] if self._entries else None

    @property
    def failed_entry(self) -> NodeExecutionEntry | None:
        """First entry carrying an error, if any."""
        return next((entry for entry in self._entries if not entry.succeeded), None)

    def finalize(self) -> list[NodeExecutionEntry]:
        """Entries as a list for attaching to an ExecutionRecord."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["ExecutionRecorder"]
