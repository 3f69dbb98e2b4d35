# src/wormremoval/parameter_store.py
from __future__ import annotations

from typing import Any, Callable, Optional, Protocol

from PyQt6.QtCore import QSettings

from .config import FIELDS, ConfigError, WormRemovalConfig, coerce_field
from .logging_config import get_logger

log = get_logger("WormRemoval.parameters")

KEY_PREFIX = "WormRemoval"

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off", "")


class ParameterStore(Protocol):
    def has(self, key: str) -> bool: ...
    def load_real(self, key: str, default: float) -> float: ...
    def load_bool(self, key: str, default: bool) -> bool: ...
    def load_string(self, key: str, default: Optional[str]) -> Optional[str]: ...
    def save(self, key: str, value: Any) -> None: ...
    def clear(self) -> None: ...


def _as_real(v, default):
    try:
        return float(v)
    except (TypeError, ValueError):
        return default


def _as_bool(v, default):
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    if isinstance(v, str):
        s = v.strip().lower()
        if s in _TRUE:
            return True
        if s in _FALSE:
            return False
    return default


class QSettingsParameterStore:
    """
    Parameters kept in the host's QSettings under 'WormRemoval/<key>'.

    INI-backed settings hand values back as strings, so the typed getters
    parse and fall back to the default on anything unreadable.
    """
    def __init__(self, settings: QSettings | None = None, prefix: str = KEY_PREFIX):
        self.settings = settings if settings is not None else QSettings()
        self.prefix = prefix.strip("/")

    def _k(self, key: str) -> str:
        return f"{self.prefix}/{key}"

    def has(self, key: str) -> bool:
        return self.settings.contains(self._k(key))

    def load_real(self, key, default):
        if not self.has(key):
            return default
        return _as_real(self.settings.value(self._k(key)), default)

    def load_bool(self, key, default):
        if not self.has(key):
            return default
        return _as_bool(self.settings.value(self._k(key)), default)

    def load_string(self, key, default):
        if not self.has(key):
            return default
        v = self.settings.value(self._k(key))
        return default if v is None else str(v)

    def save(self, key, value):
        self.settings.setValue(self._k(key), value)

    def clear(self):
        self.settings.remove(self.prefix)


class MemoryParameterStore:
    """Dict-backed store for headless runs and presets."""
    def __init__(self, values: dict | None = None):
        self.values: dict[str, Any] = dict(values or {})

    def has(self, key):
        return key in self.values

    def load_real(self, key, default):
        return _as_real(self.values[key], default) if key in self.values else default

    def load_bool(self, key, default):
        return _as_bool(self.values[key], default) if key in self.values else default

    def load_string(self, key, default):
        if key not in self.values or self.values[key] is None:
            return default
        return str(self.values[key])

    def save(self, key, value):
        self.values[key] = value

    def clear(self):
        self.values.clear()


# -----------------------------------------------------------------------------
# Config <-> store
# -----------------------------------------------------------------------------

def load_config(store: ParameterStore,
                resolve_ref: Callable[[str], Any] | None = None) -> WormRemovalConfig:
    """
    Overlay stored values on the defaults.

    Absent keys keep the default value. A stored view id that no longer resolves
    to an open document becomes None rather than an error.
    """
    cfg = WormRemovalConfig()
    changes: dict[str, Any] = {}
    for spec in FIELDS:
        if not store.has(spec.key):
            continue
        current = getattr(cfg, spec.name)
        if spec.type == "float":
            raw = store.load_real(spec.key, current)
        elif spec.type == "bool":
            raw = store.load_bool(spec.key, current)
        else:
            raw = store.load_string(spec.key, current)
        try:
            changes[spec.name] = coerce_field(spec, raw)
        except ConfigError as e:
            log.warning("Ignoring stored %s: %s", spec.key, e)

    ref = changes.get("target_ref", cfg.target_ref)
    if ref and resolve_ref is not None and resolve_ref(ref) is None:
        log.debug("stored view %r is gone; no view selected", ref)
        changes["target_ref"] = None

    return cfg.replace(**changes) if changes else cfg


def save_config(store: ParameterStore, config: WormRemovalConfig) -> None:
    store.clear()
    for key, value in config.to_mapping().items():
        store.save(key, "" if value is None else value)
