# src/wormremoval/errors.py
from __future__ import annotations

from typing import Iterable


class WormRemovalError(RuntimeError):
    """Base class for every error that stops a worm removal run."""


class ModelNotFound(WormRemovalError):
    """
    None of the candidate model files exists.

    `checked` holds every candidate path in the order it was probed so the
    user can see exactly where the tool looked.
    """
    def __init__(self, base_names: Iterable[str], checked: Iterable[str]):
        self.base_names = tuple(base_names)
        self.checked = tuple(checked)
        super().__init__(
            "Could not find an AI model file. Checked:\n" + "\n".join(self.checked)
        )


class NoActiveImage(WormRemovalError):
    def __init__(self, message: str = "No active image! Open an image first."):
        super().__init__(message)


class InvalidContext(WormRemovalError):
    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or "Worm removal could not run in the global context. "
               "Please run it directly on an image view."
        )


class StageExecutionFailed(WormRemovalError):
    def __init__(self, stage: str, detail: str = ""):
        self.stage = stage
        msg = f"Worm removal stage '{stage}' failed."
        if detail:
            msg += f"\n{detail}"
        super().__init__(msg)
