# src/wormremoval/dialog.py
from __future__ import annotations

from typing import Sequence

from PyQt6.QtWidgets import (
    QCheckBox, QComboBox, QDialog, QDialogButtonBox, QDoubleSpinBox, QFormLayout,
    QGroupBox, QLabel, QVBoxLayout,
)

from .config import FIELDS_BY_NAME, OVERLAP_LARGE, OVERLAP_SMALL, WormRemovalConfig


class WormRemovalDialog(QDialog):
    """
    Parameter editor. Each widget change swaps in a new config value; the
    caller reads config() after exec() returns Accepted.
    """
    def __init__(self, parent=None, config: WormRemovalConfig | None = None,
                 views: Sequence[tuple[str, str]] = ()):
        super().__init__(parent)
        self.setWindowTitle("Worm Removal")
        self.setMinimumWidth(450)
        self._config = config or WormRemovalConfig()

        root = QVBoxLayout(self)

        intro = QLabel(
            "<b>Worm Removal</b><br><br>"
            "Runs BlurXTerminator and StarXTerminator in the order that minimizes "
            "\"worms\" in the starless image."
        )
        intro.setWordWrap(True)
        root.addWidget(intro)

        # --- view ---
        gb_view = QGroupBox("View")
        fv = QVBoxLayout(gb_view)
        self.view_combo = QComboBox()
        for title, uid in views:
            self.view_combo.addItem(title, uid)
        if self.view_combo.count() == 0:
            self.view_combo.addItem("<no image views>", None)
        idx = self.view_combo.findData(self._config.target_ref)
        if idx >= 0:
            self.view_combo.setCurrentIndex(idx)
        elif views:
            # no view chosen yet, or it was closed: the first open one is shown
            self._config = self._config.replace(target_ref=self.view_combo.itemData(0))
        fv.addWidget(self.view_combo)
        root.addWidget(gb_view)

        # --- parameters ---
        gb = QGroupBox("BlurXTerminator and StarXTerminator parameters")
        form = QFormLayout(gb)

        self.sharpen_stars = self._spin("sharpen_stars")
        self.sharpen_nonstellar = self._spin("sharpen_nonstellar")
        self.adjust_halos = self._spin("adjust_halos")
        form.addRow(FIELDS_BY_NAME["sharpen_stars"].label, self.sharpen_stars)
        form.addRow(FIELDS_BY_NAME["sharpen_nonstellar"].label, self.sharpen_nonstellar)
        form.addRow(FIELDS_BY_NAME["adjust_halos"].label, self.adjust_halos)

        self.large_overlap = self._check("overlap", self._config.large_overlap)
        self.correct_first = self._check("correct", self._config.correct)
        self.star_mask = self._check("generate_star_mask", self._config.generate_star_mask)
        form.addRow(self.large_overlap)
        form.addRow(self.correct_first)
        form.addRow(self.star_mask)
        root.addWidget(gb)

        btns = QDialogButtonBox(QDialogButtonBox.StandardButton.Ok |
                                QDialogButtonBox.StandardButton.Cancel, parent=self)
        btns.button(QDialogButtonBox.StandardButton.Ok).setText("Execute")
        btns.accepted.connect(self.accept)
        btns.rejected.connect(self.reject)
        root.addWidget(btns)

        self.view_combo.currentIndexChanged.connect(
            lambda _i: self._set(target_ref=self.view_combo.currentData()))
        self.sharpen_stars.valueChanged.connect(lambda v: self._set(sharpen_stars=v))
        self.sharpen_nonstellar.valueChanged.connect(lambda v: self._set(sharpen_nonstellar=v))
        self.adjust_halos.valueChanged.connect(lambda v: self._set(adjust_halos=v))
        self.large_overlap.toggled.connect(
            lambda on: self._set(overlap=OVERLAP_LARGE if on else OVERLAP_SMALL))
        self.correct_first.toggled.connect(lambda on: self._set(correct=bool(on)))
        self.star_mask.toggled.connect(lambda on: self._set(generate_star_mask=bool(on)))

    def _spin(self, name: str) -> QDoubleSpinBox:
        spec = FIELDS_BY_NAME[name]
        sb = QDoubleSpinBox()
        sb.setRange(spec.min, spec.max)
        sb.setDecimals(spec.precision)
        sb.setSingleStep(0.05)
        sb.setValue(float(getattr(self._config, name)))
        sb.setToolTip(spec.tooltip)
        return sb

    def _check(self, name: str, checked: bool) -> QCheckBox:
        spec = FIELDS_BY_NAME[name]
        cb = QCheckBox(spec.label)
        cb.setChecked(bool(checked))
        cb.setToolTip(spec.tooltip)
        return cb

    def _set(self, **changes):
        self._config = self._config.replace(**changes)

    def config(self) -> WormRemovalConfig:
        return self._config


def edit_config(parent, config: WormRemovalConfig,
                views: Sequence[tuple[str, str]]) -> tuple[bool, WormRemovalConfig]:
    """Show the dialog modally; returns (accepted, edited config)."""
    dlg = WormRemovalDialog(parent, config, views)
    accepted = dlg.exec() == QDialog.DialogCode.Accepted
    return accepted, (dlg.config() if accepted else config)
