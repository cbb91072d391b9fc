"""
DaySignage - Main Entry Point

Unattended looping signage player: builds today's playlist, crossfades
through it and rebuilds it every midnight.
"""
import argparse
import sys
from typing import List, Optional

import pytz
from PySide6.QtCore import Qt
from PySide6.QtGui import QImageReader
from PySide6.QtWidgets import QApplication

from core.logging.logger import get_logger, setup_logging
from core.logging.tags import TAG_LIFECYCLE
from core.settings.settings_manager import SettingsManager
from core.threading.manager import ThreadManager
from engine.day_key import DayKeySelector
from engine.media_preloader import MediaPreloader
from engine.midnight_scheduler import MidnightScheduler
from engine.playback_engine import PlaybackEngine
from engine.playlist_builder import PlaylistBuilder
from engine.slide_timers import QtScheduler
from rendering.signage_window import SignageWindow
from sources.candidates import CandidateConfigError, CandidateSet
from sources.media_locator import MediaLocator
from utils.image_cache import ImageCache
from versioning import APP_DESCRIPTION, APP_EXE_NAME, APP_ORGANIZATION, APP_VERSION

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Flags given here override the stored settings for this run only.
    """
    parser = argparse.ArgumentParser(prog=APP_EXE_NAME, description=APP_DESCRIPTION)
    parser.add_argument("-d", "--debug", action="store_true", help="debug logging to console")
    parser.add_argument("-v", "--verbose", action="store_true", help="high-volume debug logging")
    parser.add_argument("--windowed", action="store_true", help="run in a window instead of full screen")
    parser.add_argument("--media-root", help="local directory or http(s) base URL holding the media")
    parser.add_argument("--candidates", help="JSON candidate file (defaults to the built-in list)")
    parser.add_argument("--timezone", help="reference timezone for day keys and midnight")
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    return parser.parse_args(argv)


def load_candidates(path: str) -> CandidateSet:
    if not path:
        logger.info("No candidate file configured, using built-in candidate list")
        return CandidateSet.defaults()
    return CandidateSet.load(path)


class SignagePlayer:
    """Wires settings, threads, preloader, engine, builder and scheduler together."""

    def __init__(self, settings: SettingsManager, args: argparse.Namespace):
        self.settings = settings
        timezone_name = args.timezone or settings.get_str('schedule.timezone')
        media_root = args.media_root or settings.get_str('media.root')
        candidates_file = args.candidates or settings.get_str('media.candidates_file')
        fullscreen = settings.get_bool('display.fullscreen', True) and not args.windowed

        self.candidates = load_candidates(candidates_file)
        self.day_selector = DayKeySelector(timezone_name)
        self.locator = MediaLocator(
            media_root,
            cache_bust=settings.get_bool('media.cache_bust', True),
            probe_timeout=settings.get_int('media.probe_timeout_seconds'),
        )
        self.threads = ThreadManager()

        self.window = SignageWindow(
            crossfade_ms=settings.get_int('display.crossfade_ms'),
            fullscreen=fullscreen,
        )
        self.preloader = MediaPreloader(
            thread_manager=self.threads,
            cache=ImageCache(),
            buffer_timeout_ms=settings.get_int('media.buffer_timeout_seconds') * 1000,
            muted=settings.get_bool('video.muted', True),
            parent=self.window,
        )
        self.engine = PlaybackEngine(
            self.window.surface,
            self.preloader,
            resolve=self.locator.resolve,
            scheduler=QtScheduler(self.window),
            slide_duration_ms=settings.get_int('playback.slide_seconds') * 1000,
            video_failsafe_ms=settings.get_int('playback.video_failsafe_seconds') * 1000,
            parent=self.window,
        )
        self.builder = PlaylistBuilder(
            self.candidates,
            self.day_selector,
            self.locator.exists,
            self.engine,
            thread_manager=self.threads,
            parent=self.window,
        )
        self.midnight = MidnightScheduler(
            self.builder.rebuild,
            self.day_selector.timezone,
            scheduler=QtScheduler(self.window),
            floor_ms=settings.get_int('schedule.min_delay_seconds') * 1000,
        )

        self.engine.slide_changed.connect(self._on_slide_changed)
        self.builder.playlist_built.connect(self._on_playlist_built)

    def start(self) -> None:
        logger.info(f"{TAG_LIFECYCLE} Starting player (timezone=%s, root=%s)",
                    self.day_selector.timezone.zone, self.locator.root)
        self.window.present()
        self.builder.rebuild()
        self.midnight.start()

    def shutdown(self) -> None:
        logger.info(f"{TAG_LIFECYCLE} Shutting down player")
        self.midnight.stop()
        self.engine.stop()
        self.threads.shutdown(wait=False)

    def _on_slide_changed(self, index: int, url: str) -> None:
        self.window.setWindowTitle(f"Signage - {index + 1}/{len(self.engine.playlist)}")

    def _on_playlist_built(self, playlist) -> None:
        logger.info(f"{TAG_LIFECYCLE} Playlist: %s", ", ".join(item.path for item in playlist) or "(empty)")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the signage player."""
    args = parse_args(argv)
    setup_logging(debug=args.debug, verbose=args.verbose)

    logger.info("=" * 60)
    logger.info("DaySignage %s Starting", APP_VERSION)
    logger.info("=" * 60)

    QApplication.setHighDpiScaleFactorRoundingPolicy(
        Qt.HighDpiScaleFactorRoundingPolicy.PassThrough
    )
    app = QApplication(sys.argv[:1])
    app.setApplicationName(APP_EXE_NAME)
    app.setOrganizationName(APP_ORGANIZATION)
    app.setApplicationVersion(APP_VERSION)

    # Large signage stills (8K posters) exceed Qt's default 256MB limit.
    QImageReader.setAllocationLimit(1024)

    settings = SettingsManager(APP_ORGANIZATION, "Player")
    try:
        player = SignagePlayer(settings, args)
    except (CandidateConfigError, pytz.UnknownTimeZoneError) as e:
        logger.error(f"{TAG_LIFECYCLE} Invalid configuration: {e}")
        return 2

    app.aboutToQuit.connect(player.shutdown)
    player.start()

    exit_code = app.exec()

    logger.info("=" * 60)
    logger.info(f"DaySignage Exiting (code={exit_code})")
    logger.info("=" * 60)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
