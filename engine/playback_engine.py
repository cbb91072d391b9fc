"""
Playback engine - dual-layer crossfade state machine.

The engine owns two display layers and one playlist session. Every
advance prepares the exact target URL through the preloader, assigns it to
the hidden layer, flips visibility and swaps the active-layer pointer.

States:
- IDLE: no playlist (or an empty one). Nothing armed.
- DISPLAYING: a slide is up and exactly its own triggers are armed
  (slide timer for images; failsafe timer plus end/error listener for
  videos).
- ADVANCING: the next target is being prepared. No triggers armed.

Two counters keep stale callbacks out:
- generation is bumped by start()/stop(); preload callbacks from an older
  generation are released and ignored.
- slide token is bumped on every DISPLAYING entry and exit; timer and
  video callbacks carrying an older token are ignored, so the first of
  {end, failsafe, play failure, playback error} wins and the rest are no-ops.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from PySide6.QtCore import QObject, Signal

from core.constants.timing import SLIDE_DURATION_MS, VIDEO_FAILSAFE_MS
from core.logging.logger import get_logger, is_verbose_logging
from core.logging.tags import TAG_ENGINE, TAG_FALLBACK
from engine.media_preloader import PreloadResult
from engine.slide_timers import QtScheduler, TimerHandle, cancel
from rendering.layer_surface import LAYER_COUNT, LayerSurface
from sources.media_item import MediaItem, MediaKind

logger = get_logger(__name__)


class EngineState(Enum):
    IDLE = "idle"
    DISPLAYING = "displaying"
    ADVANCING = "advancing"


@dataclass(frozen=True)
class LayerState:
    """What the engine has put on one layer."""
    item: Optional[MediaItem] = None
    url: Optional[str] = None
    visible: bool = False


def _plain_path(item: MediaItem) -> str:
    return item.path


class PlaybackEngine(QObject):
    """
    Cycles a playlist across two crossfading layers.

    Signals:
    - slide_changed(index, url): a slide became the visible one
    - state_changed(state): IDLE/DISPLAYING/ADVANCING value string
    """

    slide_changed = Signal(int, str)
    state_changed = Signal(str)

    def __init__(self, surface: LayerSurface, preloader,
                 resolve: Optional[Callable[[MediaItem], str]] = None,
                 scheduler=None,
                 slide_duration_ms: int = SLIDE_DURATION_MS,
                 video_failsafe_ms: int = VIDEO_FAILSAFE_MS,
                 parent: Optional[QObject] = None):
        """
        Args:
            surface: Two-layer render surface
            preloader: Object with prepare(url, kind, callback), release() and clear()
            resolve: Maps a MediaItem to the exact URL to prepare and show
            scheduler: Single-shot timer factory (QtScheduler by default)
            slide_duration_ms: Display time of an image slide
            video_failsafe_ms: Upper bound on a video slide
            parent: Qt parent
        """
        super().__init__(parent)
        self._surface = surface
        self._preloader = preloader
        self._resolve = resolve or _plain_path
        self._scheduler = scheduler or QtScheduler(self)
        self._slide_ms = max(1, int(slide_duration_ms))
        self._failsafe_ms = max(1, int(video_failsafe_ms))

        self._state = EngineState.IDLE
        self._playlist: Tuple[MediaItem, ...] = ()
        self._index = 0
        self._active = 0
        self._layers: List[LayerState] = [LayerState() for _ in range(LAYER_COUNT)]
        self._generation = 0
        self._token = 0
        # Consecutive slides that could not be shown (preload or play failure).
        self._failures = 0
        self._slide_timer: Optional[TimerHandle] = None
        self._failsafe_timer: Optional[TimerHandle] = None

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def index(self) -> int:
        return self._index

    @property
    def active_layer(self) -> int:
        return self._active

    @property
    def layers(self) -> Tuple[LayerState, ...]:
        return tuple(self._layers)

    @property
    def playlist(self) -> Tuple[MediaItem, ...]:
        return self._playlist

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, playlist: Sequence[MediaItem]) -> None:
        """
        Replace the session with ``playlist`` and show its first item.

        The previous session is fully torn down first. Item 0 goes straight
        onto layer 0 without a fade. An empty playlist leaves the engine IDLE.
        """
        self.stop()

        self._playlist = tuple(playlist)
        self._index = 0
        self._active = 0
        self._failures = 0
        self._layers = [LayerState() for _ in range(LAYER_COUNT)]
        self._surface.reset()

        if not self._playlist:
            logger.warning(f"{TAG_ENGINE} {TAG_FALLBACK} Empty playlist, staying idle")
            return

        logger.info(f"{TAG_ENGINE} Starting session %d with %d slides",
                    self._generation, len(self._playlist))
        self._request(0, first=True)

    def stop(self) -> None:
        """Cancel every timer and listener, stop videos and go IDLE."""
        self._generation += 1
        self._disarm()
        for layer in range(LAYER_COUNT):
            self._surface.stop(layer)
        self._preloader.clear()
        self._set_state(EngineState.IDLE)

    # ------------------------------------------------------------------
    # Advance
    # ------------------------------------------------------------------

    def _request(self, target: int, first: bool = False) -> None:
        item = self._playlist[target]
        url = self._resolve(item)
        generation = self._generation
        self._set_state(EngineState.ADVANCING)
        if is_verbose_logging():
            logger.debug(f"{TAG_ENGINE} Preparing slide %d: %s", target, url)
        self._preloader.prepare(
            url, item.kind,
            lambda result: self._on_prepared(generation, target, item, result, first),
        )

    def _advance(self) -> None:
        if self._state is not EngineState.DISPLAYING or not self._playlist:
            return
        self._disarm()
        self._request((self._index + 1) % len(self._playlist))

    def _on_prepared(self, generation: int, target: int, item: MediaItem,
                     result: PreloadResult, first: bool) -> None:
        if generation != self._generation or self._state is not EngineState.ADVANCING:
            self._preloader.release(result)
            return

        if not result.ok:
            logger.warning(f"{TAG_ENGINE} {TAG_FALLBACK} Skipping slide %d (%s): %s",
                           target, result.url, result.error)
            self._index = target
            self._failures += 1
            self._arm_retry()
            return

        self._commit(target, item, result, first)

    def _commit(self, target: int, item: MediaItem, result: PreloadResult, first: bool) -> None:
        # Nothing on screen yet (first slide failed earlier): no fade-from-nothing.
        first = first or not any(layer.visible for layer in self._layers)
        incoming = self._active if first else 1 - self._active
        outgoing = 1 - incoming

        self._surface.assign(incoming, result.url, item.kind, result.payload)
        self._layers[incoming] = LayerState(item=item, url=result.url, visible=True)
        self._surface.set_visible(incoming, True, animate=not first)

        if not first or self._layers[outgoing].visible:
            self._surface.stop(outgoing)
            self._surface.set_visible(outgoing, False, animate=not first)
            self._layers[outgoing] = replace(self._layers[outgoing], visible=False)

        self._active = incoming
        self._index = target
        logger.info(f"{TAG_ENGINE} Slide %d/%d on layer %d: %s",
                    target + 1, len(self._playlist), incoming, result.url)

        self.slide_changed.emit(target, result.url)
        self._enter_displaying(item)
        self._lookahead()

    def _lookahead(self) -> None:
        if self._state is not EngineState.DISPLAYING:
            return
        ahead = (self._index + 1) % len(self._playlist)
        item = self._playlist[ahead]
        if ahead == self._index and item.kind is MediaKind.IMAGE:
            return
        self._preloader.prepare(self._resolve(item), item.kind, None)

    # ------------------------------------------------------------------
    # DISPLAYING entry / exit
    # ------------------------------------------------------------------

    def _enter_displaying(self, item: MediaItem) -> None:
        self._token += 1
        token = self._token
        self._set_state(EngineState.DISPLAYING)

        if item.kind is MediaKind.VIDEO:
            self._failsafe_timer = self._scheduler.call_later(
                self._failsafe_ms, lambda: self._on_slide_end(token, "failsafe"), name="failsafe")
            try:
                started = self._surface.play(
                    self._active, lambda error=None: self._on_slide_end(token, "error" if error else "ended"))
            except Exception:
                logger.exception(f"{TAG_ENGINE} Video play raised")
                started = False
            if started:
                self._failures = 0
            else:
                self._play_failed(token)
            return

        self._failures = 0
        if len(self._playlist) > 1:
            self._slide_timer = self._scheduler.call_later(
                self._slide_ms, lambda: self._on_slide_end(token, "timer"), name="slide")

    def _play_failed(self, token: int) -> None:
        # Advance from a fresh timer so a synchronous preloader cannot recurse.
        # Once every slide in a row has failed, wait a slide duration per step.
        self._failures += 1
        cancel(self._failsafe_timer)
        self._failsafe_timer = None
        delay = self._slide_ms if self._failures >= len(self._playlist) else 0
        self._slide_timer = self._scheduler.call_later(
            delay, lambda: self._on_slide_end(token, "play-start failed"), name="play-failed")

    def _arm_retry(self) -> None:
        self._token += 1
        token = self._token
        self._set_state(EngineState.DISPLAYING)
        self._slide_timer = self._scheduler.call_later(
            self._slide_ms, lambda: self._on_slide_end(token, "retry"), name="retry")

    def _on_slide_end(self, token: int, reason: str) -> None:
        if token != self._token or self._state is not EngineState.DISPLAYING:
            return
        if reason == "failsafe":
            logger.info(f"{TAG_ENGINE} {TAG_FALLBACK} Video failsafe fired on slide %d", self._index)
        elif reason in ("error", "play-start failed"):
            logger.warning(f"{TAG_ENGINE} {TAG_FALLBACK} Video %s on slide %d, advancing", reason, self._index)
        elif is_verbose_logging():
            logger.debug(f"{TAG_ENGINE} Slide %d ended (%s)", self._index, reason)
        self._advance()

    def _disarm(self) -> None:
        self._token += 1
        cancel(self._slide_timer)
        cancel(self._failsafe_timer)
        self._slide_timer = None
        self._failsafe_timer = None

    def _set_state(self, state: EngineState) -> None:
        if state is self._state:
            return
        self._state = state
        self.state_changed.emit(state.value)
