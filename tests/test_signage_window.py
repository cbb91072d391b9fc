"""Tests for the Qt two-layer surface (offscreen platform)."""
import pytest
from PySide6.QtGui import QColor, QImage

from rendering.layer_surface import LayerSurface
from rendering.signage_window import SignageWindow
from sources.media_item import MediaKind


def _image():
    image = QImage(64, 36, QImage.Format.Format_RGB32)
    image.fill(QColor(0, 128, 0))
    return image


@pytest.fixture
def window(qt_app, qtbot):
    win = SignageWindow(crossfade_ms=40, fullscreen=False)
    qtbot.addWidget(win)
    win.resize(320, 180)
    return win


@pytest.mark.qt
class TestSignageWindow:
    def test_surface_implements_contract(self, window):
        assert isinstance(window.surface, LayerSurface)
        assert len(window.layer_widgets) == 2

    def test_assign_image_and_show_without_fade(self, window):
        window.surface.assign(0, "a.jpg", MediaKind.IMAGE, _image())
        window.surface.set_visible(0, True, animate=False)

        layer = window.layer_widgets[0]
        assert layer.url == "a.jpg"
        assert layer.opacity.opacity() == 1.0
        assert not layer.image_slot.pixmap().isNull()

    def test_crossfade_reaches_targets(self, window, qtbot):
        surface = window.surface
        surface.assign(0, "a.jpg", MediaKind.IMAGE, _image())
        surface.set_visible(0, True, animate=False)
        surface.assign(1, "b.jpg", MediaKind.IMAGE, _image())

        surface.set_visible(1, True, animate=True)
        surface.set_visible(0, False, animate=True)

        qtbot.waitUntil(lambda: window.layer_widgets[1].opacity.opacity() == 1.0, timeout=2000)
        qtbot.waitUntil(lambda: window.layer_widgets[0].opacity.opacity() == 0.0, timeout=2000)

    def test_reset_hides_and_clears(self, window):
        surface = window.surface
        surface.assign(0, "a.jpg", MediaKind.IMAGE, _image())
        surface.set_visible(0, True, animate=False)

        surface.reset()

        for layer in window.layer_widgets:
            assert layer.opacity.opacity() == 0.0
            assert layer.url is None

    def test_play_without_video_fails(self, window):
        window.surface.assign(0, "a.jpg", MediaKind.IMAGE, _image())
        assert window.surface.play(0, lambda error: None) is False

    def test_stop_on_image_layer_is_harmless(self, window):
        window.surface.stop(0)
        window.surface.stop(1)
