"""
Worm Removal

Runs BlurXTerminator and StarXTerminator on an open image in the order that
keeps "worm" artifacts out of the starless result.
"""

__version__ = "1.6.0"

from .config import WormRemovalConfig
from .errors import (
    InvalidContext, ModelNotFound, NoActiveImage, StageExecutionFailed, WormRemovalError,
)
from .model_paths import resolve_model, resolve_models
from .pipeline import PipelineState, WormRemovalPipeline

__all__ = [
    "WormRemovalConfig",
    "WormRemovalError", "ModelNotFound", "NoActiveImage", "InvalidContext",
    "StageExecutionFailed",
    "resolve_model", "resolve_models",
    "PipelineState", "WormRemovalPipeline",
]
