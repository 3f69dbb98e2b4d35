# src/wormremoval/model_paths.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from .errors import ModelNotFound
from .logging_config import get_logger

log = get_logger("WormRemoval.model_paths")

# Newest first. Append here when RC-Astro ships a new model generation.
STELLAR_BASES = ("BlurXTerminator.5", "BlurXTerminator.4", "BlurXTerminator.3")
STAR_SEPARATION_BASES = ("StarXTerminator.12", "StarXTerminator.11", "StarXTerminator.10")

# Core ML package, legacy Core ML, then the TensorFlow graph used on Windows.
MODEL_EXTENSIONS = (".mlpackage", ".mlmodel", ".pb")


@dataclass(frozen=True)
class ModelCandidate:
    base_name: str
    directory: str
    extension: str

    @property
    def path(self) -> str:
        return join_path(self.directory, self.base_name + self.extension)


@dataclass(frozen=True)
class ResolvedModelPath:
    """A model file that existed when it was resolved."""
    path: str
    candidate: ModelCandidate

    def __str__(self) -> str:
        return self.path


@dataclass(frozen=True)
class ResolvedModels:
    stellar: ResolvedModelPath
    star_separation: ResolvedModelPath


def join_path(directory: str, name: str) -> str:
    """Join with exactly one '/' between the two parts."""
    return directory + name if directory.endswith("/") else directory + "/" + name


def default_search_dirs(home: str | os.PathLike | None = None) -> list[str]:
    """
    Common RC-Astro / PixInsight install locations, macOS first, then Windows.

      macOS:   /Applications/PixInsight/library
               ~/Library/Application Support/RC-Astro/...
               /Library/Application Support/RC-Astro/...
      Windows: C:/Program Files/PixInsight/library
               %APPDATA%/RC-Astro/...      -> ~/AppData/Roaming/RC-Astro/...
               %PROGRAMDATA%/RC-Astro/...  -> C:/ProgramData/RC-Astro/...
    """
    h = Path(home).as_posix() if home is not None else Path.home().as_posix()
    return [
        # macOS
        "/Applications/PixInsight/library",
        join_path(h, "Library/Application Support/RC-Astro/BlurXTerminator"),
        join_path(h, "Library/Application Support/RC-Astro/StarXTerminator"),
        "/Library/Application Support/RC-Astro/BlurXTerminator",
        "/Library/Application Support/RC-Astro/StarXTerminator",

        # Windows
        "C:/Program Files/PixInsight/library",
        join_path(h, "AppData/Roaming/RC-Astro/BlurXTerminator"),
        join_path(h, "AppData/Roaming/RC-Astro/StarXTerminator"),
        "C:/ProgramData/RC-Astro/BlurXTerminator",
        "C:/ProgramData/RC-Astro/StarXTerminator",
    ]


def iter_candidates(base_names: Sequence[str], search_dirs: Sequence[str],
                    extensions: Sequence[str]):
    # directory-major: an older model in an earlier folder beats a newer one later on
    for d in search_dirs:
        for name in base_names:
            for ext in extensions:
                yield ModelCandidate(name, d, ext)


def candidate_paths(base_names: Sequence[str], search_dirs: Sequence[str],
                    extensions: Sequence[str]) -> list[str]:
    return [c.path for c in iter_candidates(base_names, search_dirs, extensions)]


def resolve_model(base_names: Sequence[str], search_dirs: Sequence[str],
                  extensions: Sequence[str] = MODEL_EXTENSIONS) -> ResolvedModelPath:
    """
    Return the first existing model file for `base_names`.

    Every call probes the filesystem again. Raises ModelNotFound listing every
    checked path when nothing exists.
    """
    checked: list[str] = []
    for cand in iter_candidates(base_names, search_dirs, extensions):
        p = cand.path
        checked.append(p)
        if os.path.exists(p):
            log.debug("model found: %s", p)
            return ResolvedModelPath(p, cand)
    log.debug("no model for %s after %d candidates", list(base_names), len(checked))
    raise ModelNotFound(base_names, checked)


def resolve_models(search_dirs: Sequence[str] | None = None,
                   extensions: Sequence[str] | None = None) -> ResolvedModels:
    dirs = list(search_dirs) if search_dirs is not None else default_search_dirs()
    exts = list(extensions) if extensions is not None else list(MODEL_EXTENSIONS)
    stellar = resolve_model(STELLAR_BASES, dirs, exts)
    starx = resolve_model(STAR_SEPARATION_BASES, dirs, exts)
    log.info("Using models: %s, %s", stellar.path, starx.path)
    return ResolvedModels(stellar=stellar, star_separation=starx)
