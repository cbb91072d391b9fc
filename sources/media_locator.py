"""
Media root resolution and existence probing.

The media root is either a local directory or an ``http(s)://`` base URL.
Remote URLs get a per-session ``?v=<token>`` suffix so a unit that has been
running for weeks still picks up files replaced on the server.
"""
import time
from pathlib import Path
from typing import Optional, Union
from urllib.parse import quote, urljoin, urlparse

import requests

from core.constants.timing import PROBE_TIMEOUT_S
from core.logging.logger import get_logger, is_verbose_logging
from core.logging.tags import TAG_PLAYLIST
from sources.media_item import MediaItem

logger = get_logger(__name__)


def is_remote_url(url: str) -> bool:
    """True for http/https URLs."""
    return urlparse(str(url)).scheme.lower() in ("http", "https")


class MediaLocator:
    """
    Turns candidate filenames into playable URLs and checks they exist.

    Local roots resolve to absolute filesystem paths. Remote roots resolve to
    URLs below the base URL.
    """

    def __init__(self, root: Union[str, Path], cache_bust: bool = True,
                 session_token: Optional[str] = None,
                 probe_timeout: float = PROBE_TIMEOUT_S,
                 http: Optional[requests.Session] = None):
        """
        Args:
            root: Local directory or http(s) base URL
            cache_bust: Append ``?v=<session_token>`` to remote URLs
            session_token: Token for cache busting; defaults to the session
                start time in milliseconds
            probe_timeout: Timeout in seconds for each HEAD request
            http: Optional requests session (connection reuse across probes)
        """
        root_str = str(root).strip()
        self._remote = is_remote_url(root_str)
        if self._remote:
            self._root = root_str if root_str.endswith("/") else root_str + "/"
        else:
            self._root = str(Path(root_str or ".").expanduser().resolve())
        self._cache_bust = bool(cache_bust)
        self._token = session_token or str(int(time.time() * 1000))
        self._probe_timeout = float(probe_timeout)
        self._http = http

        logger.info("MediaLocator root=%s (remote=%s, cache_bust=%s)",
                    self._root, self._remote, self._cache_bust and self._remote)

    @property
    def root(self) -> str:
        return self._root

    @property
    def is_remote(self) -> bool:
        return self._remote

    @property
    def session_token(self) -> str:
        return self._token

    def plain_url(self, item: MediaItem) -> str:
        """URL or path for ``item`` without the cache-busting suffix."""
        if self._remote:
            return urljoin(self._root, quote(item.path.lstrip("/")))
        return str(Path(self._root) / item.path)

    def resolve(self, item: MediaItem) -> str:
        """The exact URL handed to the preloader and the render surface."""
        url = self.plain_url(item)
        if self._remote and self._cache_bust:
            sep = "&" if "?" in url else "?"
            url = f"{url}{sep}v={self._token}"
        return url

    def exists(self, item: MediaItem) -> bool:
        """
        Existence probe for one candidate.

        Local roots check for a regular file. Remote roots send a HEAD request
        with caching disabled and follow redirects. Any failure counts as
        "not present".
        """
        url = self.plain_url(item)
        if not self._remote:
            try:
                found = Path(url).is_file()
            except OSError as e:
                logger.debug(f"{TAG_PLAYLIST} Probe error for {url}: {e}")
                return False
        else:
            found = self._head(url)

        if is_verbose_logging():
            logger.debug(f"{TAG_PLAYLIST} Probe {url}: {'present' if found else 'missing'}")
        return found

    def _head(self, url: str) -> bool:
        head = self._http.head if self._http is not None else requests.head
        try:
            response = head(
                url,
                headers={"Cache-Control": "no-cache", "Pragma": "no-cache"},
                allow_redirects=True,
                timeout=self._probe_timeout,
            )
        except requests.RequestException as e:
            logger.debug(f"{TAG_PLAYLIST} Probe failed for {url}: {e}")
            return False
        return bool(response.ok)

    __call__ = exists
