"""Engine module for signage playback and scheduling."""

from .day_key import DayKeySelector
from .media_preloader import MediaPreloader, PreloadResult, PreloadStatus
from .playlist_builder import PlaylistBuilder
from .playback_engine import EngineState, LayerState, PlaybackEngine
from .midnight_scheduler import MidnightScheduler, delay_until_next_midnight

__all__ = [
    'DayKeySelector',
    'MediaPreloader', 'PreloadResult', 'PreloadStatus',
    'PlaylistBuilder',
    'EngineState', 'LayerState', 'PlaybackEngine',
    'MidnightScheduler', 'delay_until_next_midnight',
]
