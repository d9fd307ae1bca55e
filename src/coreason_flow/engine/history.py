# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

from collections import deque
from contextlib import contextmanager
from typing import Callable, Deque, Iterator, Optional

from coreason_flow.core.config import DEFAULT_HISTORY_LIMIT
from coreason_flow.engine.graph_store import GraphChange, GraphSnapshot, GraphStore
from coreason_flow.utils.logger import logger


class EditHistory:
    """
    Undo/redo stack and dirty flag for a GraphStore.

    Every store mutation becomes one undo entry unless it happens inside a
    group (a drag gesture, a paste), in which case the whole group is one
    entry. Entries are full graph snapshots.
    """

    def __init__(self, store: GraphStore, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self._store = store
        self._limit = limit
        self._undo: Deque[GraphSnapshot] = deque(maxlen=limit)
        self._redo: Deque[GraphSnapshot] = deque(maxlen=limit)
        self._current: GraphSnapshot = store.snapshot()
        self._group_depth = 0
        self._group_start: Optional[GraphSnapshot] = None
        self._restoring = False
        self.dirty = False
        self.revision = 0
        self._unsubscribe = store.subscribe(self._on_change)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo) and self._group_depth == 0

    @property
    def can_redo(self) -> bool:
        return bool(self._redo) and self._group_depth == 0

    @property
    def limit(self) -> int:
        return self._limit

    def _on_change(self, change: GraphChange) -> None:
        self.dirty = True
        self.revision += 1
        if self._restoring or self._group_depth > 0:
            return
        self._push(self._current)
        self._current = self._store.snapshot()

    def _push(self, snapshot: GraphSnapshot) -> None:
        self._undo.append(snapshot)
        self._redo.clear()

    # --- Grouping ---

    def begin_group(self) -> None:
        if self._group_depth == 0:
            self._group_start = self._current
        self._group_depth += 1

    def end_group(self) -> None:
        if self._group_depth == 0:
            return
        self._group_depth -= 1
        if self._group_depth > 0:
            return

        after = self._store.snapshot()
        start = self._group_start
        self._group_start = None
        if start is not None and after != start:
            self._push(start)
        self._current = after

    @contextmanager
    def group(self) -> Iterator[None]:
        """Collapses every mutation made inside the block into one undo entry."""
        self.begin_group()
        try:
            yield
        finally:
            self.end_group()

    def begin_drag(self) -> None:
        """Starts a drag gesture. Intermediate moves are coalesced until end_drag()."""
        self.begin_group()

    def end_drag(self) -> None:
        self.end_group()

    def record(self, action: Callable[[], bool]) -> bool:
        """Runs a mutation as one undo entry. Nothing is recorded if it changes nothing."""
        with self.group():
            return action()

    # --- Undo / redo ---

    def undo(self) -> bool:
        if not self.can_undo:
            return False
        self._redo.append(self._current)
        self._restore(self._undo.pop())
        return True

    def redo(self) -> bool:
        if not self.can_redo:
            return False
        self._undo.append(self._current)
        self._restore(self._redo.pop())
        return True

    def _restore(self, snapshot: GraphSnapshot) -> None:
        self._restoring = True
        try:
            self._store.restore(snapshot)
        finally:
            self._restoring = False
        self._current = snapshot

    # --- Dirty tracking ---

    def mark_dirty(self) -> None:
        """Flags a change made outside the graph (settings, metadata)."""
        self.dirty = True
        self.revision += 1

    def mark_saved(self) -> None:
        self.dirty = False

    def reset(self) -> None:
        """Drops both stacks and re-bases on the store's current graph, e.g. after a load."""
        self._undo.clear()
        self._redo.clear()
        self._group_depth = 0
        self._group_start = None
        self._current = self._store.snapshot()
        self.dirty = False
        logger.debug("Edit history reset")

    def detach(self) -> None:
        self._unsubscribe()
