# src/wormremoval/executors.py
from __future__ import annotations

import os
import subprocess
import tempfile
from dataclasses import asdict, dataclass
from typing import Any, Callable, Optional, Protocol

import numpy as np
import tifffile as tiff

from .config import WormRemovalConfig
from .logging_config import get_logger
from .model_paths import ResolvedModelPath

log = get_logger("WormRemoval.executors")


class TransformExecutor(Protocol):
    """Runs one external AI transform on the target document; True on success."""
    def execute(self, buffer, parameters) -> bool: ...


def _flag(name: str) -> str:
    return "--" + name.replace("_", "-")


def _args_from(params) -> list[str]:
    out: list[str] = []
    for k, v in asdict(params).items():
        if k == "ai_file":
            out += ["--ai-file", str(v)]
        elif isinstance(v, bool):
            out += [_flag(k), "true" if v else "false"]
        else:
            out += [_flag(k), f"{v:g}" if isinstance(v, float) else str(v)]
    return out


# -----------------------------------------------------------------------------
# Process parameters
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class StellarParameters:
    """BlurXTerminator process parameters."""
    ai_file: str
    correct_only: bool = False
    correct_first: bool = False
    nonstellar_then_stellar: bool = False
    lum_only: bool = False
    sharpen_stars: float = 0.0
    adjust_halos: float = 0.0
    nonstellar_psf_diameter: float = 0.0
    auto_nonstellar_psf: bool = True
    sharpen_nonstellar: float = 0.0

    @classmethod
    def correction(cls, model: ResolvedModelPath) -> "StellarParameters":
        # every sharpening amount zeroed; only the optical correction runs
        return cls(ai_file=str(model), correct_only=True)

    @classmethod
    def for_stars(cls, model: ResolvedModelPath, config: WormRemovalConfig) -> "StellarParameters":
        return cls(ai_file=str(model),
                   sharpen_stars=config.sharpen_stars,
                   adjust_halos=config.adjust_halos)

    @classmethod
    def nonstellar(cls, model: ResolvedModelPath, config: WormRemovalConfig) -> "StellarParameters":
        return cls(ai_file=str(model), sharpen_nonstellar=config.sharpen_nonstellar)

    def as_args(self) -> list[str]:
        return _args_from(self)


@dataclass(frozen=True)
class StarSeparationParameters:
    """StarXTerminator process parameters."""
    ai_file: str
    stars: bool = False
    unscreen: bool = False
    overlap: float = 0.5

    @classmethod
    def mask(cls, model: ResolvedModelPath, config: WormRemovalConfig) -> "StarSeparationParameters":
        return cls(ai_file=str(model), stars=True, overlap=config.overlap)

    @classmethod
    def starless(cls, model: ResolvedModelPath, config: WormRemovalConfig) -> "StarSeparationParameters":
        return cls(ai_file=str(model), stars=False, overlap=config.overlap)

    def as_args(self) -> list[str]:
        return _args_from(self)


# -----------------------------------------------------------------------------
# Command-line adapter
# -----------------------------------------------------------------------------

def run_process(command: list[str], cwd: str | None = None) -> int:
    """Run `command` to completion, streaming its output to the log."""
    env = os.environ.copy()
    for k in ("PYTHONHOME", "PYTHONPATH", "DYLD_LIBRARY_PATH",
              "DYLD_FALLBACK_LIBRARY_PATH", "PYTHONEXECUTABLE"):
        env.pop(k, None)
    try:
        proc = subprocess.Popen(
            command, cwd=cwd,
            stdout=subprocess.PIPE, stderr=subprocess.STDOUT,
            text=True, env=env,
        )
    except OSError as e:
        log.error("Could not start %s: %s", command[0], e)
        return -1
    with proc.stdout:
        for line in iter(proc.stdout.readline, ""):
            log.info("  %s", line.rstrip())
    return proc.wait()


ArtifactSink = Callable[[Any, np.ndarray, str], None]


class ProcessTransformExecutor:
    """
    Runs a transform through a command-line front-end that exchanges TIFFs:

        <executable> --input in.tif --output out.tif [--stars-output stars.tif] <params>

    The result replaces the document image through its undoable apply_edit().
    A stars-only side image (mask pass) goes to `on_artifact` instead of the
    document, so the rollback that follows the mask pass leaves it alone.
    """
    def __init__(self, executable: str, name: str,
                 on_artifact: Optional[ArtifactSink] = None,
                 runner: Callable[[list[str], Optional[str]], int] = run_process):
        self.executable = executable
        self.name = name
        self.on_artifact = on_artifact
        self.runner = runner

    def build_command(self, parameters, in_path: str, out_path: str,
                      stars_path: str | None = None) -> list[str]:
        cmd = [self.executable, "--input", in_path, "--output", out_path]
        if stars_path:
            cmd += ["--stars-output", stars_path]
        return cmd + parameters.as_args()

    def execute(self, buffer, parameters) -> bool:
        src = np.asarray(buffer.image, dtype=np.float32)
        wants_stars = isinstance(parameters, StarSeparationParameters) and parameters.stars

        with tempfile.TemporaryDirectory(prefix="wormremoval_") as work:
            in_path = os.path.join(work, "input.tif")
            out_path = os.path.join(work, "output.tif")
            stars_path = os.path.join(work, "stars.tif") if wants_stars else None
            tiff.imwrite(in_path, src)

            cmd = self.build_command(parameters, in_path, out_path, stars_path)
            log.debug("running %s", " ".join(cmd))
            rc = self.runner(cmd, work)
            if rc != 0:
                log.error("%s exited with code %s", self.name, rc)
                return False
            if not os.path.exists(out_path):
                log.error("%s produced no output image", self.name)
                return False

            try:
                result = np.asarray(tiff.imread(out_path), dtype=np.float32)
                stars = None
                if stars_path and os.path.exists(stars_path):
                    stars = np.asarray(tiff.imread(stars_path), dtype=np.float32)
            except (tiff.TiffFileError, OSError, ValueError) as e:
                log.error("%s wrote an unreadable image: %s", self.name, e)
                return False

        if result.size == 0:
            log.error("%s returned an empty image", self.name)
            return False

        buffer.apply_edit(
            result,
            metadata={"step_name": self.name, "worm_removal": asdict(parameters)},
            step_name=self.name,
        )
        if stars is not None and self.on_artifact is not None:
            self.on_artifact(buffer, stars, "_stars")
        return True
