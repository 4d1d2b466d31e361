from __future__ import annotations

import copy

from src.diagram_model import DiagramGraph

MAX_HISTORY_ENTRIES = 50


class DiagramHistory:
    """Linear undo/redo log of full graph snapshots.

    ``checkpoint`` records the graph as it was right before a mutation. The
    cursor sits one past the last checkpoint while the live graph is newer than
    everything stored; the first ``undo`` from there also stores the live graph
    so ``redo`` can return to it. A checkpoint taken after undoing drops the
    redo branch. At most ``max_entries`` checkpoints are kept, oldest evicted
    first.
    """

    def __init__(self, max_entries: int = MAX_HISTORY_ENTRIES) -> None:
        if isinstance(max_entries, bool) or not isinstance(max_entries, int) or max_entries < 1:
            raise ValueError(
                "Diagram history / Max entries: must be a positive integer. "
                "Fix: configure max_history with a positive whole number."
            )
        self.max_entries = max_entries
        self._entries: list[DiagramGraph] = []
        self._index = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def index(self) -> int:
        return self._index

    @property
    def entries(self) -> tuple[DiagramGraph, ...]:
        return tuple(self._entries)

    def clear(self) -> None:
        self._entries = []
        self._index = 0

    def checkpoint(self, graph: DiagramGraph) -> None:
        del self._entries[self._index :]
        self._entries.append(copy.deepcopy(graph))
        overflow = len(self._entries) - self.max_entries
        if overflow > 0:
            del self._entries[:overflow]
        self._index = len(self._entries)

    def can_undo(self) -> bool:
        return self._index > 0

    def can_redo(self) -> bool:
        return self._index < len(self._entries) - 1

    def undo(self, current: DiagramGraph) -> DiagramGraph | None:
        if not self.can_undo():
            return None
        if self._index == len(self._entries):
            self._entries.append(copy.deepcopy(current))
        self._index -= 1
        return copy.deepcopy(self._entries[self._index])

    def redo(self) -> DiagramGraph | None:
        if not self.can_redo():
            return None
        self._index += 1
        return copy.deepcopy(self._entries[self._index])
