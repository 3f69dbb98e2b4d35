from wormremoval.config import WormRemovalConfig
from wormremoval.dialog import WormRemovalDialog


def test_widgets_start_from_config(qapp):
    cfg = WormRemovalConfig(sharpen_stars=0.3, overlap=0.2, correct=False, target_ref="b")
    dlg = WormRemovalDialog(None, cfg, [("A", "a"), ("B", "b")])
    assert dlg.sharpen_stars.value() == 0.3
    assert dlg.sharpen_stars.maximum() == 0.7
    assert dlg.adjust_halos.minimum() == -0.5
    assert not dlg.large_overlap.isChecked()
    assert not dlg.correct_first.isChecked()
    assert dlg.view_combo.currentData() == "b"
    assert dlg.config() is cfg


def test_edits_produce_new_config(qapp):
    cfg = WormRemovalConfig(target_ref="a")
    dlg = WormRemovalDialog(None, cfg, [("A", "a"), ("B", "b")])
    dlg.sharpen_nonstellar.setValue(0.0)
    dlg.large_overlap.setChecked(False)
    dlg.star_mask.setChecked(False)
    dlg.view_combo.setCurrentIndex(1)

    out = dlg.config()
    assert out is not cfg
    assert cfg.sharpen_nonstellar == 0.5 and cfg.target_ref == "a"
    assert out.sharpen_nonstellar == 0.0
    assert out.overlap == 0.2
    assert out.generate_star_mask is False
    assert out.target_ref == "b"


def test_unknown_view_falls_back_to_first(qapp):
    dlg = WormRemovalDialog(None, WormRemovalConfig(target_ref="gone"), [("A", "a")])
    assert dlg.config().target_ref == "a"

    empty = WormRemovalDialog(None, WormRemovalConfig(), [])
    assert empty.config().target_ref is None
