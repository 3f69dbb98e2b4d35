import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import numpy as np
import pytest

from wormremoval.model_paths import ModelCandidate, ResolvedModelPath, ResolvedModels


class FakeDocument:
    """Host ImageDocument stand-in: image + undo stack of (image, step) pairs."""

    def __init__(self, image=None, uid="doc-1", events=None):
        self.image = np.zeros((8, 8), np.float32) if image is None else image
        self.uid = uid
        self._undo = []
        self.events = events if events is not None else []

    def display_name(self):
        return "M42"

    def apply_edit(self, new_image, metadata=None, step_name="Edit"):
        self._undo.append((self.image, step_name))
        self.image = np.asarray(new_image, dtype=np.float32)

    def undo(self):
        self.events.append("undo")
        if not self._undo:
            return None
        self.image, name = self._undo.pop()
        return name


class RecordingExecutor:
    """Adds a constant to the image and records every call in `events`."""

    def __init__(self, name, events, fail_on=(), delta=1.0):
        self.name = name
        self.events = events
        self.fail_on = set(fail_on)
        self.delta = delta
        self.params = []

    def execute(self, buffer, parameters):
        mode = _mode(self.name, parameters)
        self.events.append(f"{self.name}:{mode}")
        self.params.append(parameters)
        if mode in self.fail_on:
            return False
        buffer.apply_edit(buffer.image + self.delta, step_name=f"{self.name} {mode}")
        return True


def _mode(name, p):
    if name == "starx":
        return "mask" if p.stars else "starless"
    if p.correct_only:
        return "correction"
    return "nonstellar" if p.sharpen_nonstellar else "stars"


@pytest.fixture
def events():
    return []


@pytest.fixture
def doc(events):
    return FakeDocument(events=events)


@pytest.fixture
def models():
    def _r(path, base):
        return ResolvedModelPath(path, ModelCandidate(base, "/models", ".pb"))
    return ResolvedModels(
        stellar=_r("/models/BlurXTerminator.4.pb", "BlurXTerminator.4"),
        star_separation=_r("/models/StarXTerminator.11.pb", "StarXTerminator.11"),
    )


@pytest.fixture
def model_dir(tmp_path):
    """A folder holding one model file of each kind, as a search_dirs list."""
    d = tmp_path / "library"
    d.mkdir()
    (d / "BlurXTerminator.4.pb").write_bytes(b"pb")
    (d / "StarXTerminator.11.pb").write_bytes(b"pb")
    return [str(d)]


@pytest.fixture(scope="session")
def qapp():
    from PyQt6.QtWidgets import QApplication
    app = QApplication.instance() or QApplication([])
    yield app
