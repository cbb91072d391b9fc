"""Timing constants for the signage player.

All timing values are in milliseconds unless otherwise noted.
"""

# =============================================================================
# Slide Timing
# =============================================================================

SLIDE_DURATION_MS = 10_000
"""How long an image slide stays up before the next advance."""

VIDEO_FAILSAFE_MS = 60_000
"""Upper bound on a video slide when playback never reports completion."""

CROSSFADE_DURATION_MS = 900
"""Opacity animation length for the layer crossfade."""

# =============================================================================
# Preloading
# =============================================================================

VIDEO_BUFFER_TIMEOUT_MS = 15_000
"""Give up on a video that has not buffered enough data to start."""

PRELOAD_CACHE_ITEMS = 4
"""Decoded images kept around (current, lookahead and a little slack)."""

PRELOAD_CACHE_MEMORY_MB = 256
"""Approximate cap for decoded image memory."""

HTTP_FETCH_TIMEOUT_S = 20.0
"""Timeout in seconds for downloading remote image bytes."""

# =============================================================================
# Playlist / Schedule
# =============================================================================

PROBE_TIMEOUT_S = 5.0
"""Timeout in seconds for a single HTTP existence probe."""

MIDNIGHT_MIN_DELAY_MS = 5_000
"""Floor for the midnight timer so clock skew never yields 0/negative."""

MIDNIGHT_GRACE_MS = 1_000
"""Added past midnight so the rebuild lands after the day-key rollover."""

# =============================================================================
# Thread Management
# =============================================================================

IO_POOL_WORKERS = 4
"""Worker threads used for fetch/decode and existence probes."""


__all__ = [
    "SLIDE_DURATION_MS",
    "VIDEO_FAILSAFE_MS",
    "CROSSFADE_DURATION_MS",
    "VIDEO_BUFFER_TIMEOUT_MS",
    "PRELOAD_CACHE_ITEMS",
    "PRELOAD_CACHE_MEMORY_MB",
    "HTTP_FETCH_TIMEOUT_S",
    "PROBE_TIMEOUT_S",
    "MIDNIGHT_MIN_DELAY_MS",
    "MIDNIGHT_GRACE_MS",
    "IO_POOL_WORKERS",
]
