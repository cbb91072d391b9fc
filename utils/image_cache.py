"""
LRU cache for decoded slide images.

The preloader decodes the lookahead slide while the current one is on
screen; the next advance picks the finished QImage out of this cache
instead of decoding it a second time.
"""
from collections import OrderedDict
import threading
from typing import Optional
from PySide6.QtGui import QImage
from core.constants.timing import PRELOAD_CACHE_ITEMS, PRELOAD_CACHE_MEMORY_MB
from core.logging.logger import get_logger, is_verbose_logging
from core.logging.tags import TAG_PRELOAD

logger = get_logger(__name__)


class ImageCache:
    """
    LRU cache of decoded QImage objects keyed by media URL.

    Writes happen from IO pool threads, reads from the UI thread, so every
    access goes through one lock. Eviction is by item count and by an
    approximate byte budget (width * height * 4).
    """

    def __init__(self, max_items: int = PRELOAD_CACHE_ITEMS,
                 max_memory_mb: int = PRELOAD_CACHE_MEMORY_MB):
        """
        Initialize image cache.

        Args:
            max_items: Maximum number of decoded images to keep
            max_memory_mb: Maximum memory to use (approximate, in MB)
        """
        self.max_items = max(1, int(max_items))
        self.max_memory_bytes = int(max_memory_mb) * 1024 * 1024

        self._cache: "OrderedDict[str, QImage]" = OrderedDict()
        self._current_memory = 0
        self._hit_count = 0
        self._miss_count = 0
        self._evict_count = 0
        self._lock = threading.RLock()

        logger.debug(f"{TAG_PRELOAD} ImageCache initialized: max_items={self.max_items}, "
                     f"max_memory={max_memory_mb}MB")

    def get(self, url: str) -> Optional[QImage]:
        """
        Look up a decoded image and mark it most recently used.

        Args:
            url: Media URL the image was decoded from

        Returns:
            QImage if cached, None otherwise
        """
        with self._lock:
            image = self._cache.get(url)
            if image is None:
                self._miss_count += 1
                return None
            self._cache.move_to_end(url)
            self._hit_count += 1
        if is_verbose_logging():
            logger.debug(f"{TAG_PRELOAD} Cache hit: {url}")
        return image

    def put(self, url: str, image: QImage) -> None:
        """
        Store a decoded image, evicting least recently used entries as needed.

        Null images are not cached.
        """
        if image is None or image.isNull():
            return
        with self._lock:
            old = self._cache.pop(url, None)
            if old is not None:
                self._current_memory -= self._estimate_size(old)

            self._cache[url] = image
            self._current_memory += self._estimate_size(image)

            # Always keep the entry just added, even if it alone blows the budget.
            while len(self._cache) > 1 and self._should_evict_locked():
                self._evict_oldest_locked()

    def contains(self, url: str) -> bool:
        with self._lock:
            return url in self._cache

    def remove(self, url: str) -> bool:
        """
        Remove an entry from cache.

        Returns:
            True if entry was removed, False if not found
        """
        with self._lock:
            image = self._cache.pop(url, None)
            if image is None:
                return False
            self._current_memory -= self._estimate_size(image)
            return True

    def clear(self) -> None:
        """Clear all cached images."""
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
            self._current_memory = 0
        if count:
            logger.debug(f"{TAG_PRELOAD} Cache cleared: {count} images removed")

    def memory_usage_mb(self) -> float:
        with self._lock:
            return self._current_memory / (1024 * 1024)

    def get_stats(self) -> dict:
        """
        Get cache statistics.

        Returns:
            Dictionary with item count, memory and hit/miss counters
        """
        with self._lock:
            total = self._hit_count + self._miss_count
            return {
                'item_count': len(self._cache),
                'max_items': self.max_items,
                'memory_usage_mb': self._current_memory / (1024 * 1024),
                'hits': self._hit_count,
                'misses': self._miss_count,
                'hit_rate_percent': (self._hit_count / total * 100.0) if total else 0.0,
                'evictions': self._evict_count,
            }

    def _should_evict_locked(self) -> bool:
        return (len(self._cache) > self.max_items or
                self._current_memory > self.max_memory_bytes)

    def _evict_oldest_locked(self) -> None:
        url, image = self._cache.popitem(last=False)
        self._current_memory -= self._estimate_size(image)
        self._evict_count += 1
        if is_verbose_logging():
            logger.debug(f"{TAG_PRELOAD} Evicted from cache: {url}")

    @staticmethod
    def _estimate_size(image: QImage) -> int:
        if image.isNull():
            return 0
        # 4 bytes per pixel (ARGB32)
        return image.width() * image.height() * 4

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, url: str) -> bool:
        return self.contains(url)

    def __str__(self) -> str:
        return (f"ImageCache(items={len(self)}/{self.max_items}, "
                f"memory={self.memory_usage_mb():.1f}MB/"
                f"{self.max_memory_bytes / (1024 * 1024):.0f}MB)")
