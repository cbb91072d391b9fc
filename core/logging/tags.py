"""Standard logging tags for consistent log filtering.

Tags prefix log messages so a single signage.log can be grepped per
subsystem.

Usage:
    from core.logging.tags import TAG_ENGINE, TAG_PRELOAD
    logger.info(f"{TAG_ENGINE} Advancing to slide {index}")
"""

# =============================================================================
# Components
# =============================================================================

TAG_ENGINE = "[ENGINE]"
"""Playback engine state changes and slide advances."""

TAG_PRELOAD = "[PRELOAD]"
"""Media fetch/decode and video buffering."""

TAG_PLAYLIST = "[PLAYLIST]"
"""Playlist builds and existence probes."""

TAG_SCHEDULE = "[SCHEDULE]"
"""Midnight rebuild scheduling."""

TAG_RENDER = "[RENDER]"
"""Layer assignment, visibility flips and crossfades."""

TAG_TIMER = "[TIMER]"
"""Single-shot slide/failsafe timers."""

TAG_THREADING = "[THREADING]"
"""Thread pool and UI dispatch."""

# =============================================================================
# Status Tags
# =============================================================================

TAG_FALLBACK = "[FALLBACK]"
"""Degraded path taken (skip, failsafe, empty playlist)."""

TAG_LIFECYCLE = "[LIFECYCLE]"
"""Start/stop of long-lived components."""

__all__ = [
    "TAG_ENGINE",
    "TAG_PRELOAD",
    "TAG_PLAYLIST",
    "TAG_SCHEDULE",
    "TAG_RENDER",
    "TAG_TIMER",
    "TAG_THREADING",
    "TAG_FALLBACK",
    "TAG_LIFECYCLE",
]
