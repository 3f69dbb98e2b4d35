# src/wormremoval/pipeline.py
"""
BlurXTerminator + StarXTerminator in the order that keeps "worms" out of the
starless result:

  1) BlurX correct-only                     (if correct)
  2) BlurX stars -> StarX stars/mask -> undo x2   (if generate_star_mask)
  3) StarX starless                         (always)
  4) BlurX nonstellar                       (if sharpen_nonstellar != 0)

Each stage edits the same document, so they run strictly one after another on
the caller's thread. The first failure ends the run.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Callable, Optional

from .config import WormRemovalConfig
from .errors import NoActiveImage, StageExecutionFailed
from .executors import StarSeparationParameters, StellarParameters, TransformExecutor
from .history import HistoryCheckpoint, is_live
from .logging_config import get_logger, log_timing
from .model_paths import ResolvedModels

log = get_logger("WormRemoval.pipeline")


class PipelineState(enum.Enum):
    IDLE = "idle"
    CORRECTION_APPLIED = "correction applied"
    MASK_BRANCH = "mask branch"
    STARLESS_GENERATED = "starless generated"
    NONSTELLAR_SHARPENED = "nonstellar sharpened"
    COMPLETE = "complete"


@dataclass(frozen=True)
class ExecutorCall:
    name: str                   # stage name reported on failure
    label: str                  # progress text
    executor: str               # "stellar" | "star_separation"
    build: Callable[[ResolvedModels, WormRemovalConfig], object]


@dataclass(frozen=True)
class PipelineStage:
    name: str
    state: PipelineState
    enabled: Callable[[WormRemovalConfig], bool]
    calls: tuple[ExecutorCall, ...]
    rollback: int = 0           # undos issued after every call succeeded


STAGES: tuple[PipelineStage, ...] = (
    PipelineStage(
        "correction", PipelineState.CORRECTION_APPLIED,
        lambda c: c.correct,
        (ExecutorCall("correction", "BlurXTerminator (correct only)", "stellar",
                      lambda m, c: StellarParameters.correction(m.stellar)),),
    ),
    PipelineStage(
        "mask", PipelineState.MASK_BRANCH,
        lambda c: c.generate_star_mask,
        (ExecutorCall("stars", "BlurXTerminator (stars)", "stellar",
                      lambda m, c: StellarParameters.for_stars(m.stellar, c)),
         ExecutorCall("mask", "StarXTerminator (mask)", "star_separation",
                      lambda m, c: StarSeparationParameters.mask(m.star_separation, c))),
        rollback=2,
    ),
    PipelineStage(
        "starless", PipelineState.STARLESS_GENERATED,
        lambda c: True,
        (ExecutorCall("starless", "StarXTerminator (starless)", "star_separation",
                      lambda m, c: StarSeparationParameters.starless(m.star_separation, c)),),
    ),
    PipelineStage(
        "nonstellar", PipelineState.NONSTELLAR_SHARPENED,
        lambda c: c.runs_nonstellar,
        (ExecutorCall("nonstellar", "BlurXTerminator (nonstellar)", "stellar",
                      lambda m, c: StellarParameters.nonstellar(m.stellar, c)),),
    ),
)


@dataclass
class PipelineResult:
    states: list[PipelineState] = field(default_factory=lambda: [PipelineState.IDLE])
    executed: list[str] = field(default_factory=list)
    rolled_back: list[str] = field(default_factory=list)

    @property
    def state(self) -> PipelineState:
        return self.states[-1]


class WormRemovalPipeline:
    def __init__(self, stellar: TransformExecutor, star_separation: TransformExecutor,
                 checkpoint_factory: Callable[[object], HistoryCheckpoint] = HistoryCheckpoint,
                 progress: Optional[Callable[[str], None]] = None):
        self.executors = {"stellar": stellar, "star_separation": star_separation}
        self.checkpoint_factory = checkpoint_factory
        self.progress = progress

    def run(self, config: WormRemovalConfig, buffer, models: ResolvedModels) -> PipelineResult:
        """
        Run every enabled stage against `buffer`.

        Raises NoActiveImage before touching anything when the buffer is gone,
        and StageExecutionFailed naming the first executor call that failed.
        """
        if not is_live(buffer):
            raise NoActiveImage()

        result = PipelineResult()
        with log_timing("Worm removal", log):
            for stage in STAGES:
                if not stage.enabled(config):
                    log.debug("skipping %s", stage.name)
                    continue
                self._run_stage(stage, config, buffer, models, result)
                result.states.append(stage.state)
        result.states.append(PipelineState.COMPLETE)
        log.info("Processing complete!")
        return result

    def _run_stage(self, stage: PipelineStage, config, buffer, models, result):
        cp = None
        if stage.rollback:
            cp = self.checkpoint_factory(buffer)
            cp.checkpoint()

        for call in stage.calls:
            log.info("Starting %s!", call.label)
            if self.progress is not None:
                self.progress(call.label)
            params = call.build(models, config)
            if not self.executors[call.executor].execute(buffer, params):
                raise StageExecutionFailed(call.name, f"{call.label} step failed.")
            result.executed.append(call.name)

        if cp is not None:
            # pixel edits go back; the star image the mask pass opened stays
            result.rolled_back.extend(cp.restore_last_n(stage.rollback))
