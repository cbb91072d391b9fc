"""
Signage window - Qt reference implementation of the two-layer surface.

Each layer is a full-window widget holding an image slot (QLabel) and a
video slot (QVideoWidget). Visibility flips are QPropertyAnimation fades of
a QGraphicsOpacityEffect on the layer, the incoming layer raised on top.
"""
from typing import Any, List, Optional

from PySide6.QtCore import QEasingCurve, QPropertyAnimation, Qt
from PySide6.QtGui import QImage, QKeyEvent, QPixmap
from PySide6.QtMultimedia import QMediaPlayer
from PySide6.QtMultimediaWidgets import QVideoWidget
from PySide6.QtWidgets import QGraphicsOpacityEffect, QLabel, QWidget

from core.constants.timing import CROSSFADE_DURATION_MS
from core.logging.logger import get_logger, is_verbose_logging
from core.logging.tags import TAG_RENDER
from engine.media_preloader import MediaPreloader
from rendering.layer_surface import LAYER_COUNT, FinishedCallback, LayerSurface
from sources.media_item import MediaKind

logger = get_logger(__name__)


class LayerWidget(QWidget):
    """One display layer: image slot, video slot and an opacity effect."""

    def __init__(self, index: int, parent: QWidget):
        super().__init__(parent)
        self.index = index
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, True)

        self.image_slot = QLabel(self)
        self.image_slot.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.image_slot.setStyleSheet("background: black;")

        self.video_slot = QVideoWidget(self)
        self.video_slot.setAspectRatioMode(Qt.AspectRatioMode.KeepAspectRatio)
        self.video_slot.hide()

        self.opacity = QGraphicsOpacityEffect(self)
        self.opacity.setOpacity(0.0)
        self.setGraphicsEffect(self.opacity)

        self.animation: Optional[QPropertyAnimation] = None
        self.player: Optional[QMediaPlayer] = None
        self.url: Optional[str] = None
        self._image: Optional[QImage] = None
        self._on_finished: Optional[FinishedCallback] = None

    # Content --------------------------------------------------------------

    def show_image(self, url: str, image: QImage) -> None:
        self.release_player()
        self.url = url
        self._image = image
        self._rescale()
        self.video_slot.hide()
        self.image_slot.show()

    def show_video(self, url: str, player: QMediaPlayer) -> None:
        self.release_player()
        self.url = url
        self._image = None
        self.image_slot.clear()
        self.image_slot.hide()
        player.setParent(self)
        player.setVideoOutput(self.video_slot)
        self.player = player
        self.video_slot.show()

    def clear(self) -> None:
        self.release_player()
        self.url = None
        self._image = None
        self.image_slot.clear()
        self.video_slot.hide()

    # Video ----------------------------------------------------------------

    def play(self, on_finished: FinishedCallback) -> bool:
        player = self.player
        if player is None:
            return False
        self.detach()
        self._on_finished = on_finished
        player.mediaStatusChanged.connect(self._on_status)
        player.errorOccurred.connect(self._on_error)
        player.setPosition(0)
        player.play()
        if player.error() != QMediaPlayer.Error.NoError:
            self.detach()
            logger.warning(f"{TAG_RENDER} Play rejected for {self.url}: {player.errorString()}")
            return False
        return True

    def stop_video(self) -> None:
        self.detach()
        if self.player is not None:
            try:
                self.player.stop()
            except RuntimeError:
                self.player = None

    def detach(self) -> None:
        player = self.player
        self._on_finished = None
        if player is None:
            return
        for signal, slot in ((player.mediaStatusChanged, self._on_status),
                             (player.errorOccurred, self._on_error)):
            try:
                signal.disconnect(slot)
            except (RuntimeError, TypeError):
                pass

    def release_player(self) -> None:
        if self.player is None:
            return
        self.detach()
        MediaPreloader.dispose_player(self.player)
        self.player = None

    def _on_status(self, status) -> None:
        if status == QMediaPlayer.MediaStatus.EndOfMedia:
            self._finish(None)
        elif status == QMediaPlayer.MediaStatus.InvalidMedia:
            self._finish("invalid media")

    def _on_error(self, error, message: str = "") -> None:
        self._finish(message or str(error))

    def _finish(self, error: Optional[str]) -> None:
        callback = self._on_finished
        self.detach()
        if callback is not None:
            callback(error)

    # Geometry -------------------------------------------------------------

    def _rescale(self) -> None:
        if self._image is None or self._image.isNull():
            return
        pixmap = QPixmap.fromImage(self._image)
        self.image_slot.setPixmap(pixmap.scaled(
            self.size(),
            Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.SmoothTransformation,
        ))

    def resizeEvent(self, event) -> None:
        super().resizeEvent(event)
        self.image_slot.setGeometry(self.rect())
        self.video_slot.setGeometry(self.rect())
        self._rescale()


class QtLayerSurface(LayerSurface):
    """LayerSurface over two LayerWidgets."""

    def __init__(self, layers: List[LayerWidget], crossfade_ms: int = CROSSFADE_DURATION_MS):
        if len(layers) != LAYER_COUNT:
            raise ValueError(f"Expected {LAYER_COUNT} layers, got {len(layers)}")
        self._layers = layers
        self._crossfade_ms = max(0, int(crossfade_ms))

    def reset(self) -> None:
        for layer in self._layers:
            self._stop_animation(layer)
            layer.clear()
            layer.opacity.setOpacity(0.0)

    def assign(self, layer: int, url: str, kind: MediaKind, payload: Any) -> None:
        widget = self._layers[layer]
        if kind is MediaKind.VIDEO:
            widget.show_video(url, payload)
        else:
            widget.show_image(url, payload)
        if is_verbose_logging():
            logger.debug(f"{TAG_RENDER} Layer {layer} <- {url}")

    def set_visible(self, layer: int, visible: bool, animate: bool = True) -> None:
        widget = self._layers[layer]
        target = 1.0 if visible else 0.0
        self._stop_animation(widget)
        if visible:
            widget.raise_()

        if not animate or self._crossfade_ms == 0:
            widget.opacity.setOpacity(target)
            return

        animation = QPropertyAnimation(widget.opacity, b"opacity", widget)
        animation.setDuration(self._crossfade_ms)
        animation.setStartValue(widget.opacity.opacity())
        animation.setEndValue(target)
        animation.setEasingCurve(QEasingCurve.Type.InOutQuad)
        widget.animation = animation
        animation.start(QPropertyAnimation.DeletionPolicy.DeleteWhenStopped)

    def play(self, layer: int, on_finished: FinishedCallback) -> bool:
        return self._layers[layer].play(on_finished)

    def stop(self, layer: int) -> None:
        self._layers[layer].stop_video()

    @staticmethod
    def _stop_animation(widget: LayerWidget) -> None:
        animation, widget.animation = widget.animation, None
        if animation is None:
            return
        try:
            animation.stop()
        except RuntimeError:
            # Already deleted after finishing.
            pass


class SignageWindow(QWidget):
    """
    Full-screen black window hosting the two layers.

    ``surface`` is what the playback engine drives.
    """

    def __init__(self, crossfade_ms: int = CROSSFADE_DURATION_MS,
                 fullscreen: bool = True, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.setWindowTitle("Signage")
        self.setStyleSheet("background: black;")
        self._fullscreen = fullscreen
        if fullscreen:
            self.setWindowFlags(
                Qt.WindowType.FramelessWindowHint
                | Qt.WindowType.WindowStaysOnTopHint
            )
            self.setCursor(Qt.CursorShape.BlankCursor)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

        self.layer_widgets = [LayerWidget(i, self) for i in range(LAYER_COUNT)]
        self.surface = QtLayerSurface(self.layer_widgets, crossfade_ms)

    def present(self) -> None:
        if self._fullscreen:
            self.showFullScreen()
        else:
            self.resize(1280, 720)
            self.show()

    def resizeEvent(self, event) -> None:
        super().resizeEvent(event)
        for layer in self.layer_widgets:
            layer.setGeometry(self.rect())

    def keyPressEvent(self, event: QKeyEvent) -> None:
        """Escape closes the window; everything else is ignored."""
        if event.key() == Qt.Key.Key_Escape:
            logger.info(f"{TAG_RENDER} Escape pressed, closing")
            self.close()
            return
        super().keyPressEvent(event)
