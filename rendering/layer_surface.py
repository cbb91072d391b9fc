"""
Two-layer render surface contract.

The playback engine only decides *what* is assigned to each of the two
layers and *when* visibility flips. Layout, scaling and the fade curve
belong to the surface.
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from sources.media_item import MediaKind

LAYER_COUNT = 2

# Called once when a video finishes; error is None on a natural end.
FinishedCallback = Callable[[Optional[str]], None]


class LayerSurface(ABC):
    """Abstract display with two stacked layers (0 and 1)."""

    @abstractmethod
    def reset(self) -> None:
        """Clear both layers, stop any video and make both invisible."""

    @abstractmethod
    def assign(self, layer: int, url: str, kind: MediaKind, payload: Any) -> None:
        """
        Put prepared media on ``layer`` without changing its visibility.

        Args:
            layer: 0 or 1
            url: URL the payload was prepared from
            kind: IMAGE or VIDEO
            payload: Decoded QImage or a buffered QMediaPlayer
        """

    @abstractmethod
    def set_visible(self, layer: int, visible: bool, animate: bool = True) -> None:
        """Show or hide ``layer``, crossfading when ``animate`` is set."""

    @abstractmethod
    def play(self, layer: int, on_finished: FinishedCallback) -> bool:
        """
        Start the video on ``layer``.

        Returns:
            False if playback could not be started. ``on_finished`` is then
            never called.
        """

    @abstractmethod
    def stop(self, layer: int) -> None:
        """Stop the video on ``layer`` (if any) and drop its finish listener."""
