# src/wormremoval/history.py
from __future__ import annotations

from typing import Any, Optional, Protocol

from .errors import StageExecutionFailed
from .logging_config import get_logger

log = get_logger("WormRemoval.history")


class TargetBuffer(Protocol):
    """
    What the pipeline needs from a host image document.

    `undo()` returns the name of the step it reverted, or None when the
    history was empty (same contract as the host's ImageDocument).
    """
    image: Any
    uid: str

    def undo(self) -> Optional[str]: ...


def is_live(buffer) -> bool:
    return buffer is not None and getattr(buffer, "image", None) is not None


def _undo_depth(buffer) -> Optional[int]:
    stack = getattr(buffer, "_undo", None)
    try:
        return len(stack) if stack is not None else None
    except TypeError:
        return None


class HistoryCheckpoint:
    """
    Marks a point in a document's undo history and rolls pixel edits back to
    it with a fixed number of undos.

    Only the target document's pixels are reverted; images the transforms
    opened as separate documents (the star mask) stay open.
    """
    def __init__(self, buffer: TargetBuffer):
        self.buffer = buffer
        self.depth: Optional[int] = None
        self._marked = False

    def checkpoint(self) -> None:
        self.depth = _undo_depth(self.buffer)
        self._marked = True
        log.debug("checkpoint at undo depth %s", self.depth)

    def restore_last_n(self, n: int) -> list[str]:
        """Issue exactly `n` undo calls; returns the reverted step names."""
        if not self._marked:
            raise RuntimeError("restore_last_n() called without checkpoint()")
        reverted: list[str] = []
        for i in range(n):
            name = self.buffer.undo()
            if name is None:
                raise StageExecutionFailed(
                    "mask-rollback",
                    f"Undo history ran out after {i} of {n} steps.",
                )
            log.debug("undo %d/%d: %s", i + 1, n, name)
            reverted.append(name)

        now = _undo_depth(self.buffer)
        if self.depth is not None and now is not None and now != self.depth:
            log.warning("undo depth %s after rollback, expected %s", now, self.depth)
        return reverted
