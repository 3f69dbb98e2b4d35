import numpy as np
import pytest

from conftest import FakeDocument, RecordingExecutor
from wormremoval.config import WormRemovalConfig
from wormremoval.errors import InvalidContext, ModelNotFound, NoActiveImage
from wormremoval.parameter_store import MemoryParameterStore
from wormremoval.pipeline import PipelineState
from wormremoval.tool import (
    STAR_SEPARATION_EXE_KEY, STELLAR_EXE_KEY, ExecutorUnavailable, default_executors,
    run_worm_removal, run_worm_removal_via_preset,
)


class FakeCtx:
    """Just enough of the host ScriptContext."""

    def __init__(self, docs=(), active=None, is_global_target=False):
        self.app = None
        self.docs = list(docs)
        self.active = active
        self.is_global_target = is_global_target
        self.messages = []
        self.opened = []

    def active_document(self):
        return self.active

    def list_image_views(self):
        return [(f"view{i}", d) for i, d in enumerate(self.docs)]

    def open_new_document(self, img, metadata=None, name=None):
        self.opened.append(name)

    def log(self, msg):
        self.messages.append(msg)


def _executors(events):
    return RecordingExecutor("blurx", events), RecordingExecutor("starx", events)


def _accept(changes=None):
    seen = {}

    def dialog(parent, config, views):
        seen["config"], seen["views"] = config, views
        return True, config.replace(**(changes or {}))
    dialog.seen = seen
    return dialog


def test_global_context_refused(events, model_dir):
    ctx = FakeCtx(is_global_target=True)
    with pytest.raises(InvalidContext):
        run_worm_removal(ctx, store=MemoryParameterStore(), dialog=_accept(),
                         executors=_executors(events), search_dirs=model_dir)
    assert events == []


def test_cancel_has_no_side_effects(events, doc, model_dir):
    store = MemoryParameterStore({"sharpenStars": 0.3})
    ctx = FakeCtx([doc], active=doc)
    out = run_worm_removal(ctx, store=store, dialog=lambda p, c, v: (False, c),
                           executors=_executors(events), search_dirs=model_dir)
    assert out is None
    assert events == []
    assert store.values == {"sharpenStars": 0.3}


def test_accept_persists_and_runs_on_active_view(events, doc, model_dir):
    other = FakeDocument(uid="doc-2")
    store = MemoryParameterStore({"targetBufferRef": "doc-2", "adjustHalos": 0.2})
    ctx = FakeCtx([other, doc], active=doc)
    dialog = _accept({"sharpen_nonstellar": 0.0})

    result = run_worm_removal(ctx, store=store, dialog=dialog,
                              executors=_executors(events), search_dirs=model_dir)

    # the active view overrides the remembered one
    assert dialog.seen["config"].target_ref == "doc-1"
    assert dialog.seen["config"].adjust_halos == 0.2
    assert dialog.seen["views"] == [("view0", "doc-2"), ("view1", "doc-1")]
    assert result.state is PipelineState.COMPLETE
    assert events[-1] == "starx:starless"
    assert np.allclose(other.image, 0.0)
    assert store.values["sharpenNonstellar"] == 0.0
    assert store.values["targetBufferRef"] == "doc-1"
    assert ctx.messages[-1] == "✅ Processing complete!"
    assert "Starting StarXTerminator (starless)!" in ctx.messages


def test_stale_view_without_active_image(events, model_dir):
    ctx = FakeCtx()
    with pytest.raises(NoActiveImage):
        run_worm_removal(ctx, store=MemoryParameterStore({"targetBufferRef": "closed"}),
                         dialog=_accept(), executors=_executors(events), search_dirs=model_dir)
    assert events == []


def test_missing_models_abort_before_any_stage(events, doc, tmp_path):
    ctx = FakeCtx([doc], active=doc)
    with pytest.raises(ModelNotFound):
        run_worm_removal(ctx, store=MemoryParameterStore(), dialog=_accept(),
                         executors=_executors(events), search_dirs=[str(tmp_path)])
    assert events == []


def test_preset_run(events, doc, model_dir):
    ctx = FakeCtx([doc], active=doc)
    result = run_worm_removal_via_preset(
        ctx, None, {"generateStarMask": False, "correct": False, "sharpenNonstellar": 0.0},
        executors=_executors(events), search_dirs=model_dir)
    assert events == ["starx:starless"]
    assert result.executed == ["starless"]


def test_preset_run_needs_a_document(events, model_dir):
    with pytest.raises(NoActiveImage):
        run_worm_removal_via_preset(FakeCtx(), None, {}, executors=_executors(events),
                                    search_dirs=model_dir)
    with pytest.raises(InvalidContext):
        run_worm_removal_via_preset(FakeCtx(), FakeDocument(), {}, global_target=True,
                                    executors=_executors(events), search_dirs=model_dir)


def test_mask_side_image_opened_as_new_view(doc, model_dir):
    from wormremoval.tool import artifact_sink
    ctx = FakeCtx([doc], active=doc)
    artifact_sink(ctx)(doc, np.ones((2, 2)), "_stars")
    assert ctx.opened == ["view0_stars"]


def _settings(tmp_path, values):
    from PyQt6.QtCore import QSettings
    s = QSettings(str(tmp_path / "host.ini"), QSettings.Format.IniFormat)
    for k, v in values.items():
        s.setValue(k, v)
    return s


@pytest.mark.parametrize("missing", [STELLAR_EXE_KEY, STAR_SEPARATION_EXE_KEY])
def test_default_executors_need_both_paths(tmp_path, missing):
    values = {STELLAR_EXE_KEY: "/opt/blurx", STAR_SEPARATION_EXE_KEY: "/opt/starx"}
    values[missing] = "   "
    with pytest.raises(ExecutorUnavailable, match=missing):
        default_executors(settings=_settings(tmp_path, values))


def test_default_executors_from_settings(tmp_path):
    sink = lambda d, arr, suffix: None  # noqa: E731
    stellar, starx = default_executors(sink, settings=_settings(tmp_path, {
        STELLAR_EXE_KEY: " /opt/blurx ",
        STAR_SEPARATION_EXE_KEY: "/opt/starx",
    }))
    assert (stellar.executable, stellar.name) == ("/opt/blurx", "BlurXTerminator")
    assert stellar.on_artifact is None
    assert (starx.executable, starx.name) == ("/opt/starx", "StarXTerminator")
    assert starx.on_artifact is sink
