# src/wormremoval/config.py
from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

OVERLAP_SMALL = 0.2
OVERLAP_LARGE = 0.5


class ConfigError(ValueError):
    pass


# -----------------------------------------------------------------------------
# Field metadata (persisted key, range, dialog precision)
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class FieldSpec:
    """
    Describes one config field.
    """
    name: str                    # attribute on WormRemovalConfig
    key: str                     # persisted key
    type: str                    # "float" | "bool" | "str"
    default: Any = None
    min: float | None = None
    max: float | None = None
    precision: int = 2
    label: str = ""
    tooltip: str = ""


FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("sharpen_stars", "sharpenStars", "float", 0.65, 0.0, 0.7,
              label="Sharpen stars:",
              tooltip="Sharpen stars parameter from BlurXTerminator"),
    FieldSpec("sharpen_nonstellar", "sharpenNonstellar", "float", 0.5, 0.0, 1.0,
              label="Sharpen nonstellar:",
              tooltip="Sharpen nonstellar parameter from BlurXTerminator. 0 skips the final pass."),
    FieldSpec("adjust_halos", "adjustHalos", "float", 0.0, -0.5, 0.5,
              label="Adjust halos:",
              tooltip="Adjust halos parameter from BlurXTerminator"),
    FieldSpec("overlap", "overlap", "float", OVERLAP_LARGE, OVERLAP_SMALL, OVERLAP_LARGE,
              label="Large overlap",
              tooltip="Large overlap option in StarXTerminator"),
    FieldSpec("correct", "correct", "bool", True,
              label="Correct first",
              tooltip="Run a correct-only BlurXTerminator pass before anything else"),
    FieldSpec("generate_star_mask", "generateStarMask", "bool", True,
              label="Generate star mask",
              tooltip="Sharpen stars and extract them as a separate image, then roll the view back"),
    FieldSpec("target_ref", "targetBufferRef", "str", None,
              label="View"),
)

FIELDS_BY_NAME = {f.name: f for f in FIELDS}
FIELDS_BY_KEY = {f.key: f for f in FIELDS}


def coerce_field(spec: FieldSpec, value: Any) -> Any:
    """Convert `value` to the field's type and check its range; raise ConfigError."""
    if spec.type == "float":
        if isinstance(value, bool):
            raise ConfigError(f"{spec.key}: expected a number, got {value!r}")
        try:
            v = float(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{spec.key}: expected a number, got {value!r}") from None
        if not math.isfinite(v):
            raise ConfigError(f"{spec.key}: must be finite, got {v}")
        if spec.name == "overlap":
            if not any(math.isclose(v, o) for o in (OVERLAP_SMALL, OVERLAP_LARGE)):
                raise ConfigError(f"overlap must be {OVERLAP_SMALL} or {OVERLAP_LARGE}, got {v}")
            return OVERLAP_LARGE if math.isclose(v, OVERLAP_LARGE) else OVERLAP_SMALL
        if spec.min is not None and v < spec.min:
            raise ConfigError(f"{spec.key}: {v} < min {spec.min}")
        if spec.max is not None and v > spec.max:
            raise ConfigError(f"{spec.key}: {v} > max {spec.max}")
        return v
    if spec.type == "bool":
        if not isinstance(value, bool):
            raise ConfigError(f"{spec.key}: expected a bool, got {value!r}")
        return value
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{spec.key}: expected a string, got {value!r}")
    return value or None


# -----------------------------------------------------------------------------
# Config value
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class WormRemovalConfig:
    """
    Parameters for one worm removal run.

    Immutable: the dialog and the preset loader build new instances with
    replace() instead of editing one in place. `target_ref` is the host's
    opaque document id (None = no view selected).
    """
    sharpen_stars: float = 0.65
    sharpen_nonstellar: float = 0.5
    adjust_halos: float = 0.0
    overlap: float = OVERLAP_LARGE
    correct: bool = True
    generate_star_mask: bool = True
    target_ref: Optional[str] = None

    def __post_init__(self):
        for spec in FIELDS:
            v = coerce_field(spec, getattr(self, spec.name))
            object.__setattr__(self, spec.name, v)

    def replace(self, **changes) -> "WormRemovalConfig":
        unknown = set(changes) - set(FIELDS_BY_NAME)
        if unknown:
            raise ConfigError(f"unknown config field(s): {', '.join(sorted(unknown))}")
        return dataclasses.replace(self, **changes)

    @property
    def large_overlap(self) -> bool:
        return self.overlap == OVERLAP_LARGE

    @property
    def runs_nonstellar(self) -> bool:
        return self.sharpen_nonstellar != 0.0

    def to_mapping(self) -> dict[str, Any]:
        """Persisted-key view of the config."""
        return {f.key: getattr(self, f.name) for f in FIELDS}

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any] | None) -> "WormRemovalConfig":
        """
        Build a config from persisted keys; missing keys keep their defaults
        and attribute names are accepted too.
        """
        cfg = cls()
        changes = {}
        for k, v in dict(values or {}).items():
            spec = FIELDS_BY_KEY.get(k) or FIELDS_BY_NAME.get(k)
            if spec is None:
                continue
            changes[spec.name] = v
        return cfg.replace(**changes) if changes else cfg
