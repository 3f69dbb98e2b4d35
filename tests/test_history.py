import numpy as np
import pytest

from conftest import FakeDocument
from wormremoval.errors import StageExecutionFailed
from wormremoval.history import HistoryCheckpoint, is_live


def test_is_live():
    assert is_live(FakeDocument())
    assert not is_live(None)
    d = FakeDocument()
    d.image = None
    assert not is_live(d)


def test_restore_reverts_pixels_only(events):
    doc = FakeDocument(events=events)
    doc.apply_edit(doc.image + 1, step_name="earlier")
    artifacts = []

    cp = HistoryCheckpoint(doc)
    cp.checkpoint()
    assert cp.depth == 1
    doc.apply_edit(doc.image + 2, step_name="stars")
    artifacts.append(doc.image.copy())          # side image opened elsewhere
    doc.apply_edit(doc.image + 3, step_name="mask")

    assert cp.restore_last_n(2) == ["mask", "stars"]
    assert np.allclose(doc.image, 1.0)
    assert events == ["undo", "undo"]
    assert len(artifacts) == 1 and np.allclose(artifacts[0], 3.0)


def test_restore_requires_checkpoint():
    with pytest.raises(RuntimeError):
        HistoryCheckpoint(FakeDocument()).restore_last_n(2)


def test_empty_history_raises():
    cp = HistoryCheckpoint(FakeDocument())
    cp.checkpoint()
    with pytest.raises(StageExecutionFailed) as ei:
        cp.restore_last_n(1)
    assert ei.value.stage == "mask-rollback"
