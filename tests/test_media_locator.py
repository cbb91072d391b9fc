"""Tests for media root resolution and existence probes."""
from pathlib import Path
from unittest.mock import MagicMock, patch

import requests

from sources.media_item import MediaItem
from sources.media_locator import MediaLocator, is_remote_url


def test_is_remote_url():
    assert is_remote_url("http://signage.local/media/")
    assert is_remote_url("HTTPS://cdn.example.com")
    assert not is_remote_url("/srv/media")
    assert not is_remote_url("media")


class TestLocalRoot:
    def test_resolve_is_absolute_path_without_token(self, tmp_path):
        locator = MediaLocator(tmp_path, session_token="123")
        url = locator.resolve(MediaItem.from_path("every1.jpg"))
        assert url == str(tmp_path.resolve() / "every1.jpg")
        assert "?v=" not in url

    def test_exists_checks_regular_file(self, tmp_path):
        (tmp_path / "mon1.jpg").write_bytes(b"x")
        (tmp_path / "folder.jpg").mkdir()
        locator = MediaLocator(tmp_path)

        assert locator.exists(MediaItem.from_path("mon1.jpg"))
        assert not locator.exists(MediaItem.from_path("mon2.jpg"))
        assert not locator.exists(MediaItem.from_path("folder.jpg"))

    def test_locator_is_callable_probe(self, tmp_path):
        (tmp_path / "a.jpg").write_bytes(b"x")
        locator = MediaLocator(tmp_path)
        assert locator(MediaItem.from_path("a.jpg")) is True

    def test_relative_root_resolved(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        locator = MediaLocator("media")
        assert Path(locator.root) == tmp_path.resolve() / "media"


class TestRemoteRoot:
    def test_resolve_appends_session_token(self):
        locator = MediaLocator("https://cdn.example.com/signage", session_token="1700000000000")
        url = locator.resolve(MediaItem.from_path("every1.jpg"))
        assert url == "https://cdn.example.com/signage/every1.jpg?v=1700000000000"

    def test_token_stable_for_session(self):
        locator = MediaLocator("https://cdn.example.com/")
        first = locator.resolve(MediaItem.from_path("a.jpg"))
        second = locator.resolve(MediaItem.from_path("a.jpg"))
        assert first == second
        assert first.endswith(f"?v={locator.session_token}")

    def test_cache_bust_disabled(self):
        locator = MediaLocator("https://cdn.example.com/", cache_bust=False)
        assert locator.resolve(MediaItem.from_path("a b.jpg")) == "https://cdn.example.com/a%20b.jpg"

    def test_probe_uses_head_without_cache(self):
        locator = MediaLocator("https://cdn.example.com/", probe_timeout=3)
        response = MagicMock(ok=True)

        with patch("sources.media_locator.requests.head", return_value=response) as head:
            assert locator.exists(MediaItem.from_path("mon1.jpg")) is True

        args, kwargs = head.call_args
        assert args[0] == "https://cdn.example.com/mon1.jpg"
        assert kwargs["headers"]["Cache-Control"] == "no-cache"
        assert kwargs["allow_redirects"] is True
        assert kwargs["timeout"] == 3

    def test_probe_not_found(self):
        locator = MediaLocator("https://cdn.example.com/")
        with patch("sources.media_locator.requests.head", return_value=MagicMock(ok=False)):
            assert locator.exists(MediaItem.from_path("missing.jpg")) is False

    def test_probe_network_error_is_missing(self):
        locator = MediaLocator("https://cdn.example.com/")
        with patch("sources.media_locator.requests.head", side_effect=requests.Timeout("slow")):
            assert locator.exists(MediaItem.from_path("a.jpg")) is False

    def test_probe_uses_supplied_session(self):
        session = MagicMock()
        session.head.return_value = MagicMock(ok=True)
        locator = MediaLocator("http://signage.local/", http=session)

        assert locator.exists(MediaItem.from_path("a.mp4"))
        session.head.assert_called_once()
