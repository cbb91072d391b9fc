"""
Playlist builder.

Combines the always-on candidates with today's candidates, keeps the ones
that exist and restarts the playback engine with the result. Missing files
are routine (content sets are sparse) and are dropped without fuss.
"""
from typing import Callable, Optional, Tuple

from PySide6.QtCore import QObject, Signal

from core.logging.logger import get_logger, is_verbose_logging
from core.logging.tags import TAG_FALLBACK, TAG_PLAYLIST
from core.threading.manager import TaskResult, ThreadManager
from engine.day_key import DayKeySelector
from sources.candidates import CandidateSet
from sources.media_item import MediaItem

logger = get_logger(__name__)

Playlist = Tuple[MediaItem, ...]


class PlaylistBuilder(QObject):
    """
    Builds the day's playlist and hands it to the engine.

    Probing runs on the IO pool when a ThreadManager is given, inline
    otherwise. When rebuilds overlap only the most recent one is applied.

    Signals:
    - playlist_built(tuple): emitted after the engine was restarted
    """

    playlist_built = Signal(object)

    def __init__(self, candidates: CandidateSet, day_selector: DayKeySelector,
                 probe: Callable[[MediaItem], bool], engine,
                 thread_manager: Optional[ThreadManager] = None,
                 parent: Optional[QObject] = None):
        """
        Args:
            candidates: Static candidate configuration
            day_selector: Source of the current day key
            probe: Existence check for one candidate
            engine: Object with start(playlist)
            thread_manager: IO pool for probing
            parent: Qt parent
        """
        super().__init__(parent)
        self._candidates = candidates
        self._days = day_selector
        self._probe = probe
        self._engine = engine
        self._threads = thread_manager
        self._request_seq = 0
        self._last_playlist: Playlist = ()

    @property
    def last_playlist(self) -> Playlist:
        return self._last_playlist

    def build_playlist(self, day_key: str) -> Playlist:
        """
        Existence-filtered candidates for ``day_key``.

        Always-on items come first, then the day's items, each in declared
        order. Candidates are probed one at a time in that same order; a
        probe that returns False or raises drops the candidate.

        Args:
            day_key: One of DAY_KEYS (unknown keys contribute no day items)

        Returns:
            tuple of surviving MediaItem
        """
        kept = []
        candidates = self._candidates.for_day(day_key)
        for item in candidates:
            try:
                present = bool(self._probe(item))
            except Exception as e:
                logger.debug(f"{TAG_PLAYLIST} Probe raised for {item.path}: {e}")
                present = False
            if present:
                kept.append(item)
            elif is_verbose_logging():
                logger.debug(f"{TAG_PLAYLIST} Excluded missing candidate {item.path}")

        logger.info(f"{TAG_PLAYLIST} Built playlist for %s: %d of %d candidates present",
                    day_key, len(kept), len(candidates))
        return tuple(kept)

    def rebuild(self) -> None:
        """
        Build today's playlist and restart the engine with it.

        A day-key failure is logged and leaves the running session alone;
        the next scheduled rebuild tries again.
        """
        try:
            day_key = self._days.current_key()
        except Exception:
            logger.exception(f"{TAG_PLAYLIST} {TAG_FALLBACK} Cannot read day key, keeping current playlist")
            return

        # Only a rebuild that got this far may supersede one still in flight.
        self._request_seq += 1
        seq = self._request_seq

        if self._threads is None:
            self._apply(seq, day_key, self.build_playlist(day_key))
            return

        try:
            self._threads.submit_io_task(
                self.build_playlist, day_key,
                task_id=f"playlist:{day_key}:{seq}",
                callback=lambda res: ThreadManager.run_on_ui_thread(self._on_built, seq, day_key, res),
            )
        except RuntimeError as e:
            logger.error(f"{TAG_PLAYLIST} Cannot schedule playlist build: {e}")

    def _on_built(self, seq: int, day_key: str, result: TaskResult) -> None:
        if not result.success:
            logger.error(f"{TAG_PLAYLIST} Playlist build for {day_key} failed: {result.error}")
            return
        self._apply(seq, day_key, result.result)

    def _apply(self, seq: int, day_key: str, playlist: Playlist) -> None:
        if seq != self._request_seq:
            logger.debug(f"{TAG_PLAYLIST} Dropping superseded build #{seq} for {day_key}")
            return
        if not playlist:
            logger.warning(f"{TAG_PLAYLIST} {TAG_FALLBACK} No media present for {day_key}")
        self._last_playlist = playlist
        self._engine.start(playlist)
        self.playlist_built.emit(playlist)
