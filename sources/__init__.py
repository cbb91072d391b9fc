"""Media candidates and locations for the signage player."""

from .media_item import MediaItem, MediaKind, VIDEO_EXTENSIONS, kind_for_path
from .candidates import CandidateSet, CandidateConfigError, DAY_KEYS
from .media_locator import MediaLocator, is_remote_url

__all__ = [
    'MediaItem', 'MediaKind', 'VIDEO_EXTENSIONS', 'kind_for_path',
    'CandidateSet', 'CandidateConfigError', 'DAY_KEYS',
    'MediaLocator', 'is_remote_url',
]
