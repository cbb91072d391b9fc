"""Single-shot timers owned by the playback engine and the midnight scheduler.

Components never hold raw QTimers. They ask a scheduler for a one-shot
callback and keep the returned handle, which exposes only ``stop`` and
``is_active``. Tests swap in a scheduler driven by a manual clock.
"""
from __future__ import annotations

from typing import Callable, Optional

from PySide6.QtCore import QMetaObject, QObject, Qt, QThread, QTimer

from core.logging.logger import get_logger, is_verbose_logging
from core.logging.tags import TAG_TIMER

logger = get_logger(__name__)


class TimerHandle:
    """Handle to one pending single-shot timer."""

    def __init__(self, timer: Optional[QTimer], name: str = "") -> None:
        self._timer = timer
        self.name = name

    def stop(self) -> None:
        timer = self._timer
        if timer is None:
            return
        self._timer = None
        try:
            if QThread.currentThread() is timer.thread():
                timer.stop()
                timer.deleteLater()
            else:
                QMetaObject.invokeMethod(timer, "stop", Qt.ConnectionType.QueuedConnection)
                QMetaObject.invokeMethod(timer, "deleteLater", Qt.ConnectionType.QueuedConnection)
        except RuntimeError:
            # Underlying C++ object already gone.
            logger.debug(f"{TAG_TIMER} Timer %s already deleted", self.name)

    def is_active(self) -> bool:
        timer = self._timer
        if timer is None:
            return False
        try:
            return timer.isActive()
        except RuntimeError:
            return False

    def _fired(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.deleteLater()


class QtScheduler:
    """Creates precise single-shot QTimers parented to ``parent``."""

    def __init__(self, parent: Optional[QObject] = None) -> None:
        self._parent = parent

    def call_later(self, delay_ms: int, callback: Callable[[], None],
                   name: str = "") -> TimerHandle:
        """
        Run ``callback`` once on the UI thread after ``delay_ms``.

        Exceptions raised by the callback are logged with traceback and do
        not propagate into the Qt event loop.

        Args:
            delay_ms: Delay in milliseconds (negative values run immediately)
            callback: Zero-argument callable
            name: Label used in log lines

        Returns:
            TimerHandle that can cancel the pending call
        """
        timer = QTimer(self._parent)
        timer.setSingleShot(True)
        timer.setTimerType(Qt.TimerType.PreciseTimer)
        handle = TimerHandle(timer, name)

        def _on_timeout() -> None:
            if handle._timer is not timer:
                return
            handle._fired()
            try:
                callback()
            except Exception:
                logger.exception(f"{TAG_TIMER} Timer callback %s raised", name or callback)

        timer.timeout.connect(_on_timeout)
        timer.start(max(0, int(delay_ms)))
        if is_verbose_logging():
            logger.debug(f"{TAG_TIMER} Armed %s for %dms", name or "timer", max(0, int(delay_ms)))
        return handle


def cancel(handle: Optional[TimerHandle]) -> None:
    """Stop ``handle`` if it is set."""
    if handle is not None:
        handle.stop()
