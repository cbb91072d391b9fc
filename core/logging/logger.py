"""
Centralized logging configuration for the signage player.

Uses a rotating file handler with logs stored in logs/ next to the project
(or next to the executable for frozen builds). Console output is only
attached in debug mode and collapses runs of repeated lines.
"""
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path


_VERBOSE: bool = False
_BASE_DIR: Path = Path(__file__).parent.parent.parent

LOG_FORMAT = '%(asctime)s - %(name)-28s - %(levelname)-8s - %(message)s'


class ColoredFormatter(logging.Formatter):
    """Formatter that colours console lines by level.

    Lines tagged ``[FALLBACK]`` get their own colour so skipped slides and
    failsafe advances stand out while watching a unit in debug mode.
    """

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    FALLBACK_COLOR = '\033[38;5;208m'
    RESET = '\033[0m'
    BOLD = '\033[1m'

    def format(self, record):
        original_levelname = record.levelname
        if '[FALLBACK]' in str(record.msg):
            color = self.FALLBACK_COLOR
        else:
            color = self.COLORS.get(record.levelname)

        if color is None:
            return super().format(record)

        record.levelname = f"{self.BOLD}{color}{record.levelname}{self.RESET}"
        try:
            return f"{color}{super().format(record)}{self.RESET}"
        finally:
            record.levelname = original_levelname


class SuppressingStreamHandler(logging.StreamHandler):
    """Console handler that folds consecutive DEBUG/INFO lines from one logger.

    A run of lines from the same logger at the same level is printed once,
    followed by ``[N Suppressed: CHECK LOG]`` when the run ends. WARNING and
    above always print. File handlers are unaffected.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._last_key: tuple[str, int] | None = None
        self._last_record: logging.LogRecord | None = None
        self._suppress_count: int = 0

    def emit(self, record: logging.LogRecord) -> None:
        try:
            if record.levelno >= logging.WARNING:
                self._flush_summary()
                self._last_key = None
                self._write(record)
                return

            key = (record.name, record.levelno)
            if key == self._last_key:
                self._suppress_count += 1
                self._last_record = record
                return

            self._flush_summary()
            self._write(record)
            self._last_key = key
            self._last_record = record
        except Exception:
            self.handleError(record)

    def _write(self, record: logging.LogRecord) -> None:
        stream = self.stream
        if stream is None:
            return
        text = self.format(record) + self.terminator
        try:
            stream.write(text)
        except UnicodeEncodeError:
            # Console codepage cannot show the character; the file log keeps it.
            encoding = getattr(stream, "encoding", None) or "ascii"
            stream.write(text.encode(encoding, errors="replace").decode(encoding, errors="replace"))
        self.flush()

    def _flush_summary(self) -> None:
        if self._suppress_count <= 0 or self._last_record is None:
            self._suppress_count = 0
            return
        last = self._last_record
        summary = logging.LogRecord(
            last.name,
            last.levelno,
            last.pathname,
            last.lineno,
            f"[{self._suppress_count} Suppressed: CHECK LOG]",
            args=None,
            exc_info=None,
        )
        summary.created = last.created
        summary.msecs = last.msecs
        self._suppress_count = 0
        self._write(summary)

    def close(self) -> None:
        try:
            self._flush_summary()
        finally:
            super().close()


def get_log_dir() -> Path:
    """Return the directory used for log files.

    setup_logging() updates the base directory for frozen builds, so call it
    once at startup before relying on this path.
    """
    return _BASE_DIR / "logs"


def setup_logging(debug: bool = False, verbose: bool = False) -> None:
    """
    Configure application logging with file rotation.

    Args:
        debug: If True, log at DEBUG level and mirror output to the console.
        verbose: Enables high-volume debug lines (per-probe results, cache
            hits). Implies debug.
    """
    global _VERBOSE, _BASE_DIR

    debug_enabled = debug or verbose

    # Frozen builds keep logs/ beside the executable so on-site staff can
    # find them without knowing where the bundle was unpacked.
    if getattr(sys, "frozen", False):
        exe_path = Path(getattr(sys, "executable", "") or "")
        if exe_path.exists():
            _BASE_DIR = exe_path.parent

    env_dir = os.getenv("SIGNAGE_LOG_DIR")
    log_dir = Path(env_dir) if env_dir else get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    level = logging.DEBUG if debug_enabled else logging.INFO

    file_handler = RotatingFileHandler(
        log_dir / "signage.log",
        maxBytes=1 * 1024 * 1024,
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    file_handler.setLevel(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(file_handler)

    if debug_enabled:
        console_handler = SuppressingStreamHandler(sys.stdout)
        if sys.stdout.isatty():
            console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt='%H:%M:%S'))
        else:
            console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S'))
        console_handler.setLevel(level)
        root_logger.addHandler(console_handler)

    # HTTP connection pool chatter only in verbose mode.
    noisy_level = logging.DEBUG if verbose else logging.INFO
    for name in ("urllib3", "urllib3.connectionpool"):
        logging.getLogger(name).setLevel(noisy_level)

    _VERBOSE = bool(verbose)

    root_logger.info("=" * 60)
    root_logger.info("Signage logging initialized (debug=%s, verbose=%s)", debug_enabled, _VERBOSE)
    root_logger.info("=" * 60)


_SHORT_NAME_OVERRIDES = {
    "engine.playback_engine": "engine.playback",
    "engine.media_preloader": "engine.preload",
    "engine.midnight_scheduler": "engine.midnight",
    "rendering.signage_window": "rendering.window",
}


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with optional short-name overrides for long module paths."""
    return logging.getLogger(_SHORT_NAME_OVERRIDES.get(name, name))


def is_verbose_logging() -> bool:
    """Return True when verbose debug logging is enabled globally."""
    return _VERBOSE
