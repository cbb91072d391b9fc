"""
Shared pytest fixtures for signage player tests.
"""
import os
import sys
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtWidgets import QApplication  # noqa: E402

from engine.media_preloader import PreloadResult, PreloadStatus  # noqa: E402
from sources.media_item import MediaItem, MediaKind  # noqa: E402


@pytest.fixture(scope='session')
def qt_app():
    """Create QApplication instance for tests."""
    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)
    yield app
    # Don't quit - causes issues with pytest


@pytest.fixture
def settings_manager(qt_app):
    """Create SettingsManager instance for testing."""
    from core.settings import SettingsManager
    manager = SettingsManager(organization="Test", application="SignageTest")
    manager.reset_to_defaults()
    yield manager
    manager.clear()


@pytest.fixture
def thread_manager():
    """Create ThreadManager instance for testing."""
    from core.threading.manager import ThreadManager
    manager = ThreadManager(io_workers=2)
    yield manager
    manager.shutdown(wait=True)


@pytest.fixture
def temp_image(tmp_path):
    """Create a temporary 100x100 test image."""
    from PySide6.QtGui import QImage, QColor
    from PySide6.QtCore import QSize

    image = QImage(QSize(100, 100), QImage.Format.Format_RGB32)
    image.fill(QColor(255, 0, 0))

    image_path = tmp_path / "test_image.png"
    image.save(str(image_path))

    return image_path


# ---------------------------------------------------------------------------
# Deterministic stand-ins for timers, the render surface and the preloader
# ---------------------------------------------------------------------------


class FakeTimer:
    def __init__(self, due_ms: int, callback: Callable[[], None], name: str) -> None:
        self.due_ms = due_ms
        self.callback = callback
        self.name = name
        self._active = True

    def stop(self) -> None:
        self._active = False

    def is_active(self) -> bool:
        return self._active


class FakeScheduler:
    """Manual clock. advance() fires due timers in order, including ones
    armed by earlier callbacks inside the same window."""

    def __init__(self) -> None:
        self.now_ms = 0
        self.timers: List[FakeTimer] = []

    def call_later(self, delay_ms: int, callback: Callable[[], None], name: str = "") -> FakeTimer:
        timer = FakeTimer(self.now_ms + max(0, int(delay_ms)), callback, name)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> List[FakeTimer]:
        return [t for t in self.timers if t.is_active()]

    def pending_named(self, name: str) -> List[FakeTimer]:
        return [t for t in self.pending if t.name == name]

    def advance(self, ms: int) -> None:
        target = self.now_ms + int(ms)
        while True:
            due = [t for t in self.pending if t.due_ms <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due_ms)
            self.now_ms = timer.due_ms
            timer.stop()
            timer.callback()
        self.now_ms = target


class FakeSurface:
    """Records what the engine assigns and shows on each layer."""

    def __init__(self) -> None:
        self.layers: List[Dict[str, Any]] = [self._empty() for _ in range(2)]
        self.calls: List[Tuple] = []
        self.listeners: Dict[int, Callable[[Optional[str]], None]] = {}
        self.play_result = True
        self.plays: List[int] = []

    @staticmethod
    def _empty() -> Dict[str, Any]:
        return {"url": None, "kind": None, "payload": None, "visible": False}

    def reset(self) -> None:
        self.calls.append(("reset",))
        self.layers = [self._empty() for _ in range(2)]
        self.listeners.clear()

    def assign(self, layer, url, kind, payload) -> None:
        self.calls.append(("assign", layer, url))
        self.layers[layer].update(url=url, kind=kind, payload=payload)

    def set_visible(self, layer, visible, animate=True) -> None:
        self.calls.append(("visible", layer, visible, animate))
        self.layers[layer]["visible"] = visible

    def play(self, layer, on_finished) -> bool:
        self.plays.append(layer)
        if not self.play_result:
            return False
        self.listeners[layer] = on_finished
        return True

    def stop(self, layer) -> None:
        self.calls.append(("stop", layer))
        self.listeners.pop(layer, None)

    def finish(self, layer: int, error: Optional[str] = None) -> None:
        """Simulate the video on ``layer`` ending (or erroring)."""
        listener = self.listeners.pop(layer, None)
        if listener is not None:
            listener(error)

    @property
    def visible_layers(self) -> List[int]:
        return [i for i, layer in enumerate(self.layers) if layer["visible"]]

    def visible_url(self) -> Optional[str]:
        visible = self.visible_layers
        return self.layers[visible[0]]["url"] if len(visible) == 1 else None


class FakePreloader:
    """Preloader answering synchronously unless ``deferred`` is set."""

    def __init__(self) -> None:
        self.fail_urls = set()
        self.deferred = False
        self.requests: List[Tuple[str, MediaKind, bool]] = []
        self.pending: List[Tuple[str, MediaKind, Callable]] = []
        self.released: List[PreloadResult] = []
        self.clear_count = 0

    def result_for(self, url: str, kind: MediaKind) -> PreloadResult:
        if url in self.fail_urls:
            return PreloadResult(PreloadStatus.FAILED, url, kind, None, "missing")
        return PreloadResult(PreloadStatus.READY, url, kind, f"payload:{url}")

    def prepare(self, url, kind, callback=None) -> None:
        self.requests.append((url, kind, callback is not None))
        if callback is None:
            return
        if self.deferred:
            self.pending.append((url, kind, callback))
            return
        callback(self.result_for(url, kind))

    def resolve_pending(self, index: int = 0) -> None:
        url, kind, callback = self.pending.pop(index)
        callback(self.result_for(url, kind))

    def targets(self) -> List[str]:
        """URLs requested with a callback (display targets, not lookahead)."""
        return [url for url, _, has_cb in self.requests if has_cb]

    def lookaheads(self) -> List[str]:
        return [url for url, _, has_cb in self.requests if not has_cb]

    def release(self, result) -> None:
        self.released.append(result)

    def clear(self) -> None:
        self.clear_count += 1
        self.pending.clear()


class FakeEngine:
    def __init__(self) -> None:
        self.started: List[Tuple[MediaItem, ...]] = []

    def start(self, playlist) -> None:
        self.started.append(tuple(playlist))


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def surface():
    return FakeSurface()


@pytest.fixture
def preloader():
    return FakePreloader()


@pytest.fixture
def fake_engine():
    return FakeEngine()


def items(*paths: str) -> Tuple[MediaItem, ...]:
    return tuple(MediaItem.from_path(p) for p in paths)
