"""
Media item model for the signage player.

A MediaItem is a candidate filename plus its kind. The kind comes from the
extension alone so the same filename always plays the same way.
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath


class MediaKind(Enum):
    """Kind of media a slide shows."""
    IMAGE = "image"
    VIDEO = "video"


VIDEO_EXTENSIONS = frozenset({
    ".mp4", ".webm", ".mov", ".m4v", ".mkv", ".avi", ".ogv",
})


def kind_for_path(path: str) -> MediaKind:
    """Return VIDEO for a recognised video extension (any case), else IMAGE."""
    # Query strings and fragments never decide the kind.
    bare = path.split("?", 1)[0].split("#", 1)[0]
    suffix = PurePosixPath(bare).suffix.lower()
    return MediaKind.VIDEO if suffix in VIDEO_EXTENSIONS else MediaKind.IMAGE


@dataclass(frozen=True)
class MediaItem:
    """
    One candidate slide.

    ``kind`` is always derived from ``path``; it cannot be passed in.
    """
    path: str
    kind: MediaKind = field(init=False)

    def __post_init__(self):
        if not self.path or not str(self.path).strip():
            raise ValueError("MediaItem must have a non-empty path")
        object.__setattr__(self, "kind", kind_for_path(self.path))

    @classmethod
    def from_path(cls, path: str) -> "MediaItem":
        return cls(path=str(path).strip())

    @property
    def is_video(self) -> bool:
        return self.kind is MediaKind.VIDEO

    def __str__(self) -> str:
        return self.path
