"""
Candidate configuration for the signage player.

A CandidateSet lists every file that *might* play: an always-on group plus
one group per weekday. Which of them actually play is decided at build
time by the existence probe.

JSON layout::

    {
        "always": ["every1.jpg", "promo.mp4"],
        "days": {"mon": ["mon1.jpg"], "sat": ["sat1.jpg", "sat2.jpg"]}
    }
"""
import json
from dataclasses import dataclass, field
from pathlib import Path
from collections.abc import Iterable, Mapping
from typing import Dict, Tuple, Union
from sources.media_item import MediaItem
from core.logging.logger import get_logger

logger = get_logger(__name__)

DAY_KEYS: Tuple[str, ...] = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


class CandidateConfigError(ValueError):
    """Raised when a candidate file cannot be used."""


def _to_items(names: Iterable, where: str) -> Tuple[MediaItem, ...]:
    if isinstance(names, (str, bytes)) or not isinstance(names, Iterable):
        raise CandidateConfigError(f"{where} must be a list of filenames")
    items = []
    for name in names:
        if not isinstance(name, str) or not name.strip():
            raise CandidateConfigError(f"{where} contains an invalid filename: {name!r}")
        items.append(MediaItem.from_path(name))
    return tuple(items)


@dataclass(frozen=True)
class CandidateSet:
    """Static always-on and per-day candidate lists, in declared order."""
    always: Tuple[MediaItem, ...] = ()
    days: Mapping[str, Tuple[MediaItem, ...]] = field(default_factory=dict)

    def __post_init__(self):
        unknown = sorted(set(self.days) - set(DAY_KEYS))
        if unknown:
            raise CandidateConfigError(f"Unknown day key(s): {', '.join(unknown)}")

    def for_day(self, day_key: str) -> Tuple[MediaItem, ...]:
        """Always-on items followed by the items for ``day_key`` (none if absent)."""
        return tuple(self.always) + tuple(self.days.get(day_key, ()))

    @classmethod
    def from_mapping(cls, data: Mapping) -> "CandidateSet":
        """
        Build a CandidateSet from parsed JSON.

        Args:
            data: Mapping with optional ``always`` list and ``days`` object

        Returns:
            CandidateSet

        Raises:
            CandidateConfigError: On a malformed layout or unknown day key
        """
        if not isinstance(data, Mapping):
            raise CandidateConfigError("Candidate config must be a JSON object")

        always = _to_items(data.get("always", []), "always")
        raw_days = data.get("days", {})
        if not isinstance(raw_days, Mapping):
            raise CandidateConfigError("days must be an object keyed by day")

        days: Dict[str, Tuple[MediaItem, ...]] = {}
        for key, names in raw_days.items():
            day = str(key).strip().lower()
            if day not in DAY_KEYS:
                raise CandidateConfigError(f"Unknown day key: {key!r}")
            days[day] = _to_items(names, f"days.{day}")
        return cls(always=always, days=days)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "CandidateSet":
        """Load a CandidateSet from a JSON file."""
        path = Path(path)
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise CandidateConfigError(f"Cannot read candidate file {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise CandidateConfigError(f"Invalid JSON in {path}: {e}") from e

        candidates = cls.from_mapping(data)
        logger.info("Loaded candidates from %s: %d always-on, %d day lists",
                    path, len(candidates.always), len(candidates.days))
        return candidates

    @classmethod
    def defaults(cls) -> "CandidateSet":
        """Built-in layout: every1..5.jpg plus <day>1..3.jpg for each weekday."""
        always = tuple(MediaItem.from_path(f"every{i}.jpg") for i in range(1, 6))
        days = {
            day: tuple(MediaItem.from_path(f"{day}{i}.jpg") for i in range(1, 4))
            for day in DAY_KEYS
        }
        return cls(always=always, days=days)
