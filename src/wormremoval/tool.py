# src/wormremoval/tool.py
"""
Host entry points.

run_worm_removal(ctx) is what the Scripts menu calls: load the remembered
parameters, show the dialog, then resolve models and run the pipeline on the
chosen view. run_worm_removal_via_preset() is the dialog-free variant used by
command drops and function bundles.
"""
from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Sequence

import numpy as np
from PyQt6.QtCore import QSettings

from .config import WormRemovalConfig
from .errors import InvalidContext, NoActiveImage, WormRemovalError
from .executors import ArtifactSink, ProcessTransformExecutor
from .history import is_live
from .logging_config import get_logger
from .model_paths import resolve_models
from .parameter_store import ParameterStore, QSettingsParameterStore, load_config, save_config
from .pipeline import PipelineResult, WormRemovalPipeline

log = get_logger("WormRemoval")

STELLAR_EXE_KEY = "paths/blurxterminator"
STAR_SEPARATION_EXE_KEY = "paths/starxterminator"


class ExecutorUnavailable(WormRemovalError):
    pass


# -----------------------------------------------------------------------------
# Host helpers (ScriptContext-shaped ctx)
# -----------------------------------------------------------------------------

def _is_global_target(ctx) -> bool:
    return bool(getattr(ctx, "is_global_target", False))


def _list_views(ctx) -> list[tuple[str, Any]]:
    fn = getattr(ctx, "list_image_views", None)
    return list(fn()) if callable(fn) else []


def _active_doc(host):
    d = getattr(host, "active_document", None) or getattr(host, "_active_doc", None)
    return d() if callable(d) else d


def resolve_target(ctx, ref: Optional[str]):
    """Map a stored view id to an open document, or None."""
    if not ref:
        return None
    app = getattr(ctx, "app", None)
    dm = getattr(app, "doc_manager", None) if app is not None else None
    if dm is not None and hasattr(dm, "get_document_by_uid"):
        doc = dm.get_document_by_uid(ref)
        if doc is not None:
            return doc
    for _title, doc in _list_views(ctx):
        if getattr(doc, "uid", None) == ref:
            return doc
    return None


def _view_title(host, doc) -> str:
    for title, d in _list_views(host):
        if d is doc:
            return title
    dn = getattr(doc, "display_name", None)
    return dn() if callable(dn) else "Image"


def artifact_sink(host) -> ArtifactSink:
    """
    Opens side images (stars-only) as new documents next to the target.

    `host` is a script ctx (open_new_document) or the main window (docman).
    """
    def _open(doc, arr, suffix):
        base = _view_title(host, doc)
        title = base if base.endswith(suffix) else f"{base}{suffix}"
        arr = arr.astype(np.float32, copy=False)
        meta = {
            "bit_depth": "32-bit floating point",
            "is_mono": (arr.ndim == 2),
            "source": "Stars-Only (Worm Removal)",
        }
        if hasattr(host, "open_new_document"):
            host.open_new_document(arr, metadata=meta, name=title)
            return
        dm = getattr(host, "docman", None) or getattr(host, "doc_manager", None)
        if dm is None:
            log.warning("No document manager; stars image not opened.")
            return
        newdoc = dm.open_array(arr, metadata=meta, title=title)
        if hasattr(host, "_spawn_subwindow_for"):
            host._spawn_subwindow_for(newdoc)
    return _open


def default_executors(sink: ArtifactSink | None = None, settings: QSettings | None = None):
    """Command-line front-ends configured under paths/* in QSettings."""
    s = settings if settings is not None else QSettings()
    stellar = s.value(STELLAR_EXE_KEY, "", type=str).strip()
    starx = s.value(STAR_SEPARATION_EXE_KEY, "", type=str).strip()
    if not stellar:
        raise ExecutorUnavailable(f"BlurXTerminator executable not set ({STELLAR_EXE_KEY}).")
    if not starx:
        raise ExecutorUnavailable(f"StarXTerminator executable not set ({STAR_SEPARATION_EXE_KEY}).")
    return (
        ProcessTransformExecutor(stellar, "BlurXTerminator"),
        ProcessTransformExecutor(starx, "StarXTerminator", on_artifact=sink),
    )


def _execute(doc, config: WormRemovalConfig, sink: ArtifactSink, *, executors=None,
             search_dirs: Sequence[str] | None = None,
             progress: Callable[[str], None] | None = None) -> PipelineResult:
    if not is_live(doc):
        raise NoActiveImage()

    # both models must exist before the first stage touches the image
    models = resolve_models(search_dirs)
    stellar, starx = executors if executors is not None else default_executors(sink)

    return WormRemovalPipeline(stellar, starx, progress=progress).run(config, doc, models)


# -----------------------------------------------------------------------------
# Entry points
# -----------------------------------------------------------------------------

def _edit_with_dialog(parent, config, views):
    from .dialog import edit_config
    return edit_config(parent, config, views)


def run_worm_removal(ctx, *, store: ParameterStore | None = None,
                     dialog: Callable = _edit_with_dialog,
                     executors=None,
                     search_dirs: Sequence[str] | None = None) -> PipelineResult | None:
    """
    Scripts-menu trigger. Returns None when the dialog is cancelled.
    """
    if _is_global_target(ctx):
        raise InvalidContext()

    store = store if store is not None else QSettingsParameterStore()
    config = load_config(store, resolve_ref=lambda ref: resolve_target(ctx, ref))

    active = _active_doc(ctx)
    if is_live(active) and getattr(active, "uid", None):
        config = config.replace(target_ref=active.uid)

    views = [(title, getattr(doc, "uid", None)) for title, doc in _list_views(ctx)]
    accepted, config = dialog(getattr(ctx, "app", None), config, views)
    if not accepted:
        log.debug("dialog cancelled")
        return None

    save_config(store, config)

    def _progress(label):
        if hasattr(ctx, "log"):
            ctx.log(f"Starting {label}!")

    doc = resolve_target(ctx, config.target_ref)
    result = _execute(doc, config, artifact_sink(ctx), executors=executors,
                      search_dirs=search_dirs, progress=_progress)
    if hasattr(ctx, "log"):
        ctx.log("✅ Processing complete!")
    return result


def run_worm_removal_via_preset(main, target_doc=None, preset: Mapping[str, Any] | None = None,
                                *, executors=None, search_dirs: Sequence[str] | None = None,
                                global_target: bool = False) -> PipelineResult:
    """
    Headless run on `target_doc` (or the active document) with preset values
    layered over the defaults. `main` is the host main window or a script ctx.
    """
    if global_target:
        raise InvalidContext()

    doc = target_doc if target_doc is not None else _active_doc(main)
    if not is_live(doc):
        raise NoActiveImage()

    config = WormRemovalConfig.from_mapping(preset).replace(target_ref=getattr(doc, "uid", None))
    return _execute(doc, config, artifact_sink(main), executors=executors,
                    search_dirs=search_dirs)
