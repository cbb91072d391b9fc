"""
Media preloader for the playback engine.

A slide only becomes eligible for display once it is fully prepared:

- images are fetched and decoded into a QImage on the IO pool, so assigning
  them to a layer costs no further decode time;
- videos get a QMediaPlayer whose media status has reached LoadedMedia or
  BufferedMedia, so playback can start at once without the whole file
  being downloaded.

Results come back as a PreloadResult (READY or FAILED) on the UI thread.
There is no internal retry. Retrying is up to the caller.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import requests
from PySide6.QtCore import QObject, QUrl
from PySide6.QtGui import QImage, QImageReader
from PySide6.QtMultimedia import QAudioOutput, QMediaPlayer

from core.constants.timing import HTTP_FETCH_TIMEOUT_S, VIDEO_BUFFER_TIMEOUT_MS
from core.logging.logger import get_logger, is_verbose_logging
from core.logging.tags import TAG_PRELOAD
from core.threading.manager import TaskResult, ThreadManager
from engine.slide_timers import QtScheduler, TimerHandle
from sources.media_item import MediaKind
from sources.media_locator import is_remote_url
from utils.image_cache import ImageCache

logger = get_logger(__name__)


class PreloadStatus(Enum):
    READY = "ready"
    FAILED = "failed"


@dataclass
class PreloadResult:
    """Outcome of preparing one URL.

    ``payload`` is the decoded QImage for images and the prepared
    QMediaPlayer for videos.
    """
    status: PreloadStatus
    url: str
    kind: MediaKind
    payload: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is PreloadStatus.READY


PreloadCallback = Callable[[PreloadResult], None]

_READY_STATES = (
    QMediaPlayer.MediaStatus.LoadedMedia,
    QMediaPlayer.MediaStatus.BufferedMedia,
)


def to_qurl(url: str) -> QUrl:
    if is_remote_url(url):
        return QUrl(url)
    return QUrl.fromLocalFile(url)


def load_image(url: str, timeout: float = HTTP_FETCH_TIMEOUT_S) -> QImage:
    """
    Fetch and fully decode an image.

    Runs on an IO pool thread; QImage is safe to build off the UI thread.

    Raises:
        requests.RequestException: On a failed HTTP fetch
        ValueError: If the bytes cannot be decoded
    """
    if is_remote_url(url):
        response = requests.get(url, timeout=timeout, headers={"Cache-Control": "no-cache"})
        response.raise_for_status()
        image = QImage()
        if not image.loadFromData(response.content):
            raise ValueError(f"Undecodable image data from {url}")
        return image

    reader = QImageReader(url)
    reader.setAutoTransform(True)
    image = reader.read()
    if image.isNull():
        raise ValueError(f"Cannot decode {url}: {reader.errorString()}")
    return image


def default_player_factory(parent: QObject, muted: bool = True) -> QMediaPlayer:
    player = QMediaPlayer(parent)
    audio = QAudioOutput(player)
    audio.setMuted(muted)
    player.setAudioOutput(audio)
    return player


class _VideoJob:
    """One QMediaPlayer being buffered for ``url``."""

    def __init__(self, owner: "MediaPreloader", url: str, player: QMediaPlayer):
        self.owner = owner
        self.url = url
        self.player = player
        self.waiter: Optional[PreloadCallback] = None
        self.result: Optional[PreloadResult] = None
        self.timeout: Optional[TimerHandle] = None

    def begin(self, timeout_ms: int) -> None:
        self.player.mediaStatusChanged.connect(self._on_status)
        self.player.errorOccurred.connect(self._on_error)
        self.timeout = self.owner._scheduler.call_later(
            timeout_ms, self._on_timeout, name=f"buffer:{self.url}"
        )
        self.player.setSource(to_qurl(self.url))
        # Some backends report LoadedMedia synchronously from setSource().
        if self.result is None:
            self._on_status(self.player.mediaStatus())

    def _on_status(self, status) -> None:
        if self.result is not None:
            return
        if status in _READY_STATES:
            self._settle(PreloadResult(PreloadStatus.READY, self.url, MediaKind.VIDEO, self.player))
        elif status == QMediaPlayer.MediaStatus.InvalidMedia:
            self._settle(self._failed("invalid media"))

    def _on_error(self, error, message: str = "") -> None:
        if self.result is None:
            self._settle(self._failed(message or str(error)))

    def _on_timeout(self) -> None:
        self.timeout = None
        if self.result is None:
            self._settle(self._failed("buffering timed out"))

    def _failed(self, reason: str) -> PreloadResult:
        return PreloadResult(PreloadStatus.FAILED, self.url, MediaKind.VIDEO, None, reason)

    def detach(self) -> None:
        if self.timeout is not None:
            self.timeout.stop()
            self.timeout = None
        for signal, slot in ((self.player.mediaStatusChanged, self._on_status),
                             (self.player.errorOccurred, self._on_error)):
            try:
                signal.disconnect(slot)
            except (RuntimeError, TypeError):
                pass

    def _settle(self, result: PreloadResult) -> None:
        self.result = result
        self.detach()
        if not result.ok:
            logger.warning(f"{TAG_PRELOAD} Video preload failed for {self.url}: {result.error}")
            MediaPreloader.dispose_player(self.player)
        else:
            logger.debug(f"{TAG_PRELOAD} Video buffered: {self.url}")
        self.owner._video_settled(self)


class MediaPreloader(QObject):
    """
    Prepares slides ahead of display.

    ``prepare(url, kind, callback)`` never blocks and calls ``callback``
    exactly once on the UI thread. Passing ``callback=None`` warms the item
    (lookahead): a decoded image lands in the cache, a buffered video player
    is parked until the next ``prepare`` for the same URL claims it.
    """

    def __init__(self, thread_manager: Optional[ThreadManager] = None,
                 cache: Optional[ImageCache] = None,
                 player_factory: Optional[Callable[[QObject], QMediaPlayer]] = None,
                 scheduler=None,
                 buffer_timeout_ms: int = VIDEO_BUFFER_TIMEOUT_MS,
                 fetch_timeout: float = HTTP_FETCH_TIMEOUT_S,
                 muted: bool = True,
                 parent: Optional[QObject] = None):
        """
        Args:
            thread_manager: IO pool for fetch/decode; decode runs inline without one
            cache: Decoded image cache
            player_factory: Creates a QMediaPlayer parented to the given object
            scheduler: Timer scheduler used for the buffering timeout
            buffer_timeout_ms: Give up on a video that has not buffered by then
            fetch_timeout: HTTP timeout in seconds for image downloads
            muted: Mute audio on players from the default factory
            parent: Qt parent
        """
        super().__init__(parent)
        self._threads = thread_manager
        self._cache = cache if cache is not None else ImageCache()
        self._player_factory = player_factory or (lambda owner: default_player_factory(owner, muted))
        self._scheduler = scheduler or QtScheduler(self)
        self._buffer_timeout_ms = int(buffer_timeout_ms)
        self._fetch_timeout = float(fetch_timeout)

        self._image_waiters: Dict[str, List[PreloadCallback]] = {}
        self._lock = threading.Lock()
        self._videos: Dict[str, _VideoJob] = {}

    @property
    def cache(self) -> ImageCache:
        return self._cache

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def prepare(self, url: str, kind: MediaKind,
                callback: Optional[PreloadCallback] = None) -> None:
        """
        Prepare ``url`` for display.

        Args:
            url: Exact URL (or local path) the surface will be given
            kind: IMAGE or VIDEO
            callback: Receives the PreloadResult on the UI thread
        """
        if kind is MediaKind.VIDEO:
            self._prepare_video(url, callback)
        else:
            self._prepare_image(url, callback)

    def release(self, result: Optional[PreloadResult]) -> None:
        """Dispose of a payload the caller decided not to use."""
        if result is None or not result.ok:
            return
        if result.kind is MediaKind.VIDEO and result.payload is not None:
            self.dispose_player(result.payload)

    def clear(self) -> None:
        """Drop cached images and every parked or buffering video player."""
        self._cache.clear()
        with self._lock:
            self._image_waiters.clear()
        jobs, self._videos = list(self._videos.values()), {}
        for job in jobs:
            job.detach()
            if job.result is None or job.result.ok:
                self.dispose_player(job.player)
        if jobs:
            logger.debug(f"{TAG_PRELOAD} Released {len(jobs)} pending video players")

    @staticmethod
    def dispose_player(player) -> None:
        try:
            player.stop()
            player.setSource(QUrl())
            player.deleteLater()
        except RuntimeError:
            logger.debug(f"{TAG_PRELOAD} Player already deleted")

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def _prepare_image(self, url: str, callback: Optional[PreloadCallback]) -> None:
        cached = self._cache.get(url)
        if cached is not None:
            if callback is not None:
                callback(PreloadResult(PreloadStatus.READY, url, MediaKind.IMAGE, cached))
            return

        with self._lock:
            waiters = self._image_waiters.get(url)
            joined = waiters is not None
            if joined:
                if callback is not None:
                    waiters.append(callback)
            else:
                self._image_waiters[url] = [callback] if callback is not None else []

        if joined:
            if is_verbose_logging():
                logger.debug(f"{TAG_PRELOAD} Joined in-flight decode for {url}")
            return

        if self._threads is None:
            self._finish_image(url, self._decode(url))
            return

        try:
            self._threads.submit_io_task(
                self._decode, url,
                task_id=f"decode:{url}",
                callback=lambda res: ThreadManager.run_on_ui_thread(
                    self._finish_image, url, self._unwrap(url, res)),
            )
        except RuntimeError as e:
            logger.warning(f"{TAG_PRELOAD} Cannot submit decode for {url}: {e}")
            self._finish_image(url, PreloadResult(PreloadStatus.FAILED, url, MediaKind.IMAGE, None, str(e)))

    def _decode(self, url: str) -> PreloadResult:
        try:
            image = load_image(url, self._fetch_timeout)
        except (requests.RequestException, ValueError, OSError) as e:
            return PreloadResult(PreloadStatus.FAILED, url, MediaKind.IMAGE, None, str(e))
        self._cache.put(url, image)
        return PreloadResult(PreloadStatus.READY, url, MediaKind.IMAGE, image)

    @staticmethod
    def _unwrap(url: str, task: TaskResult) -> PreloadResult:
        if task.success and isinstance(task.result, PreloadResult):
            return task.result
        return PreloadResult(PreloadStatus.FAILED, url, MediaKind.IMAGE, None, str(task.error))

    def _finish_image(self, url: str, result: PreloadResult) -> None:
        with self._lock:
            waiters = self._image_waiters.pop(url, [])
        if result.ok:
            if is_verbose_logging():
                logger.debug(f"{TAG_PRELOAD} Decoded {url} ({result.payload.width()}x{result.payload.height()})")
        else:
            logger.warning(f"{TAG_PRELOAD} Image preload failed for {url}: {result.error}")
        for callback in waiters:
            try:
                callback(result)
            except Exception:
                logger.exception(f"{TAG_PRELOAD} Preload callback raised for {url}")

    # ------------------------------------------------------------------
    # Videos
    # ------------------------------------------------------------------

    def _prepare_video(self, url: str, callback: Optional[PreloadCallback]) -> None:
        job = self._videos.get(url)
        if job is not None:
            if callback is None:
                return
            if job.waiter is None:
                if job.result is not None:
                    # Parked lookahead player: hand it over.
                    del self._videos[url]
                    callback(job.result)
                else:
                    job.waiter = callback
                return
            # Already claimed by someone else: buffer a second player.

        try:
            player = self._player_factory(self)
        except Exception as e:
            logger.warning(f"{TAG_PRELOAD} Cannot create media player for {url}: {e}")
            if callback is not None:
                callback(PreloadResult(PreloadStatus.FAILED, url, MediaKind.VIDEO, None, str(e)))
            return

        job = _VideoJob(self, url, player)
        job.waiter = callback
        if url not in self._videos:
            self._videos[url] = job
        job.begin(self._buffer_timeout_ms)

    def _video_settled(self, job: _VideoJob) -> None:
        if job.waiter is None:
            # Lookahead: park ready players, forget failures.
            if not job.result.ok and self._videos.get(job.url) is job:
                del self._videos[job.url]
            return
        if self._videos.get(job.url) is job:
            del self._videos[job.url]
        callback, job.waiter = job.waiter, None
        try:
            callback(job.result)
        except Exception:
            logger.exception(f"{TAG_PRELOAD} Preload callback raised for {job.url}")
