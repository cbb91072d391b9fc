"""
Settings manager implementation for the signage player.

Uses QSettings for persistent storage so on-site tweaks (slide length,
media root, timezone) survive reboots without editing files.
"""
from typing import Any, Callable, Dict, List
import threading
from PySide6.QtCore import QSettings, QObject, Signal
from core.constants.timing import (
    CROSSFADE_DURATION_MS,
    MIDNIGHT_MIN_DELAY_MS,
    PROBE_TIMEOUT_S,
    SLIDE_DURATION_MS,
    VIDEO_BUFFER_TIMEOUT_MS,
    VIDEO_FAILSAFE_MS,
)
from core.logging.logger import get_logger, is_verbose_logging

logger = get_logger('SettingsManager')


DEFAULT_SETTINGS: Dict[str, Any] = {
    # Playback
    'playback.slide_seconds': SLIDE_DURATION_MS // 1000,
    'playback.video_failsafe_seconds': VIDEO_FAILSAFE_MS // 1000,

    # Display
    'display.crossfade_ms': CROSSFADE_DURATION_MS,
    'display.fullscreen': True,
    'video.muted': True,

    # Schedule
    'schedule.timezone': 'America/Toronto',
    'schedule.min_delay_seconds': MIDNIGHT_MIN_DELAY_MS // 1000,

    # Media
    'media.root': 'media',
    'media.candidates_file': '',
    'media.cache_bust': True,
    'media.probe_timeout_seconds': int(PROBE_TIMEOUT_S),
    'media.buffer_timeout_seconds': VIDEO_BUFFER_TIMEOUT_MS // 1000,
}


class SettingsManager(QObject):
    """
    Centralized settings management for the player.

    Uses QSettings for persistent storage with organization/application name.
    Thread-safe with change notifications.
    """

    # Signal emitted when settings change
    settings_changed = Signal(str, object)  # key, new_value

    def __init__(self, organization: str = "DaySignage",
                 application: str = "Player"):
        """
        Initialize the settings manager.

        Args:
            organization: Organization name for QSettings
            application: Application name for QSettings
        """
        super().__init__()
        self._settings = QSettings(organization, application)
        self._organization = organization
        self._application = application
        self._lock = threading.RLock()
        self._change_handlers: Dict[str, List[Callable]] = {}

        self._set_defaults()
        logger.info("SettingsManager initialized (%s/%s)", organization, application)

    def _set_defaults(self) -> None:
        """Set default values if not already present."""
        with self._lock:
            for key, value in DEFAULT_SETTINGS.items():
                if not self._settings.contains(key):
                    self._settings.setValue(key, value)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a setting value.

        Args:
            key: Setting key in dot notation (e.g., 'media.root')
            default: Default value if key not found

        Returns:
            Setting value or default
        """
        if default is None:
            default = DEFAULT_SETTINGS.get(key)
        with self._lock:
            return self._settings.value(key, default)

    @staticmethod
    def to_bool(value: Any, default: bool = False) -> bool:
        """Normalize a stored setting value to bool.

        QSettings' INI backend hands booleans back as "true"/"false" strings,
        so the common spellings are accepted in either case.
        """
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            v = value.strip().lower()
            if v in ("true", "1", "yes", "on"):
                return True
            if v in ("false", "0", "no", "off"):
                return False
            return default
        if value is None:
            return default
        return bool(value)

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Convenience wrapper around get() that normalizes to bool."""
        return self.to_bool(self.get(key, DEFAULT_SETTINGS.get(key, default)), default)

    def get_int(self, key: str, default: int = 0) -> int:
        """Return an integer setting, falling back to the default on junk values."""
        raw = self.get(key, DEFAULT_SETTINGS.get(key, default))
        try:
            return int(float(raw))
        except (TypeError, ValueError):
            logger.warning("Setting %s=%r is not a number, using %s", key, raw, default)
            return default

    def get_str(self, key: str, default: str = "") -> str:
        raw = self.get(key, DEFAULT_SETTINGS.get(key, default))
        return default if raw is None else str(raw)

    def set(self, key: str, value: Any) -> None:
        """
        Set a setting value.

        Args:
            key: Setting key in dot notation
            value: Value to set
        """
        with self._lock:
            old_value = self._settings.value(key)
            self._settings.setValue(key, value)

            self.settings_changed.emit(key, value)

            for handler in self._change_handlers.get(key, []):
                try:
                    handler(value, old_value)
                except Exception as e:
                    logger.error(f"Error in change handler for {key}: {e}")

        if is_verbose_logging():
            logger.debug("Setting changed: %s: %r -> %r", key, old_value, value)
        else:
            logger.debug("Setting changed: %s", key)

    def on_changed(self, key: str, handler: Callable[[Any, Any], None]) -> None:
        """
        Register a handler for when a specific setting changes.

        Args:
            key: Setting key to watch
            handler: Callback function(new_value, old_value)
        """
        with self._lock:
            self._change_handlers.setdefault(key, []).append(handler)
        logger.debug(f"Registered change handler for {key}")

    def contains(self, key: str) -> bool:
        with self._lock:
            return self._settings.contains(key)

    def clear(self) -> None:
        """Clear all settings (use with caution)."""
        with self._lock:
            self._settings.clear()
        logger.warning("All settings cleared")

    def reset_to_defaults(self) -> None:
        """Drop every stored value and re-apply DEFAULT_SETTINGS."""
        with self._lock:
            self._settings.clear()
            self._set_defaults()
            self._settings.sync()
        logger.info("Settings reset to defaults")
        self.settings_changed.emit('*', None)
