"""Tests for media items and the candidate configuration."""
import json

import pytest

from sources.candidates import DAY_KEYS, CandidateConfigError, CandidateSet
from sources.media_item import MediaItem, MediaKind, kind_for_path


class TestMediaItem:
    @pytest.mark.parametrize("path", ["a.mp4", "CLIP.MP4", "x.webm", "y.Mov", "z.m4v", "promo.mp4?v=3"])
    def test_video_extensions(self, path):
        assert kind_for_path(path) is MediaKind.VIDEO

    @pytest.mark.parametrize("path", ["a.jpg", "b.PNG", "c.gif", "noext", "weird.mp4x", "movie.mp4.jpg"])
    def test_everything_else_is_image(self, path):
        assert kind_for_path(path) is MediaKind.IMAGE

    def test_kind_derived_on_construction(self):
        item = MediaItem("promo.mp4")
        assert item.kind is MediaKind.VIDEO
        assert item.is_video

    def test_immutable(self):
        item = MediaItem.from_path("a.jpg")
        with pytest.raises(AttributeError):
            item.path = "b.jpg"

    def test_equal_items_compare_equal(self):
        assert MediaItem.from_path("a.jpg") == MediaItem("a.jpg")

    def test_kind_cannot_be_overridden(self):
        with pytest.raises(TypeError):
            MediaItem("a.jpg", MediaKind.VIDEO)
        with pytest.raises(TypeError):
            MediaItem(path="a.jpg", kind=MediaKind.VIDEO)

    def test_empty_path_rejected(self):
        with pytest.raises(ValueError):
            MediaItem("  ")


class TestCandidateSet:
    def test_defaults_match_builtin_layout(self):
        candidates = CandidateSet.defaults()
        assert [i.path for i in candidates.always] == [f"every{n}.jpg" for n in range(1, 6)]
        assert set(candidates.days) == set(DAY_KEYS)
        assert [i.path for i in candidates.days["wed"]] == ["wed1.jpg", "wed2.jpg", "wed3.jpg"]

    def test_for_day_orders_always_first(self):
        candidates = CandidateSet.from_mapping({
            "always": ["a.jpg", "b.mp4"],
            "days": {"mon": ["c.jpg"]},
        })
        assert [i.path for i in candidates.for_day("mon")] == ["a.jpg", "b.mp4", "c.jpg"]
        assert [i.path for i in candidates.for_day("tue")] == ["a.jpg", "b.mp4"]

    def test_day_keys_are_case_insensitive(self):
        candidates = CandidateSet.from_mapping({"days": {"FRI": ["f.jpg"]}})
        assert [i.path for i in candidates.for_day("fri")] == ["f.jpg"]

    def test_unknown_day_rejected(self):
        with pytest.raises(CandidateConfigError):
            CandidateSet.from_mapping({"days": {"funday": ["x.jpg"]}})

    def test_non_list_rejected(self):
        with pytest.raises(CandidateConfigError):
            CandidateSet.from_mapping({"always": "every1.jpg"})

    def test_blank_filename_rejected(self):
        with pytest.raises(CandidateConfigError):
            CandidateSet.from_mapping({"always": ["ok.jpg", ""]})

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "candidates.json"
        path.write_text(json.dumps({"always": ["promo.mp4"], "days": {"sat": ["sat1.jpg"]}}), encoding="utf-8")

        candidates = CandidateSet.load(path)

        assert candidates.always[0].kind is MediaKind.VIDEO
        assert [i.path for i in candidates.for_day("sat")] == ["promo.mp4", "sat1.jpg"]

    def test_load_bad_json(self, tmp_path):
        path = tmp_path / "candidates.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(CandidateConfigError):
            CandidateSet.load(path)

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(CandidateConfigError):
            CandidateSet.load(tmp_path / "absent.json")
