"""Templated `{z}/{x}/{y}` tile URL backend over HTTP(S)."""

import mimetypes
import threading
from urllib.parse import urlparse

import requests

from contourgen.dem_sources.base import DemSource, DemSourceError, DemSourceKind, FetchResult, validate_zxy


HTTP_TIMEOUT_S = 10.0
_PLACEHOLDERS = ("{z}", "{x}", "{y}")


def format_tile_url(template: str, z: int, x: int, y: int) -> str:
    return template.replace("{z}", str(z)).replace("{x}", str(x)).replace("{y}", str(y))


def _guess_mime_type(url: str) -> str | None:
    mime_type, _ = mimetypes.guess_type(urlparse(url).path)
    return mime_type


class UrlTemplateDemSource(DemSource):
    """Fetch DEM tiles by substituting coordinates into a URL pattern."""

    kind = DemSourceKind.URL_TEMPLATE

    def __init__(self, location: str, logger=None, timeout: float = HTTP_TIMEOUT_S):
        super().__init__(location, logger=logger)
        missing = [token for token in _PLACEHOLDERS if token not in location]
        if missing:
            raise DemSourceError(f"DEM URL template is missing {', '.join(missing)}: {location}")
        self.timeout = timeout
        self._local = threading.local()
        self._sessions: list[requests.Session] = []
        self._lock = threading.Lock()

    @property
    def default_mime_type(self) -> str | None:
        return _guess_mime_type(self.location)

    def _session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
            with self._lock:
                self._sessions.append(session)
        return session

    def tile_url(self, z: int, x: int, y: int) -> str:
        return format_tile_url(self.location, z, x, y)

    def fetch(self, z: int, x: int, y: int) -> FetchResult:
        validate_zxy(z, x, y)
        url = self.tile_url(z, x, y)

        # Network errors and non-success statuses are recoverable: the tile is treated as absent.
        try:
            response = self._session().get(url, timeout=self.timeout)
        except requests.RequestException as err:
            self.log.warning(f"DEM tile request failed for {z}/{x}/{y}: {err}\n    {url}")
            return FetchResult.absent(self.default_mime_type)
        if not response.ok:
            self.log.warning(f"DEM tile not found for {z}/{x}/{y} (HTTP {response.status_code})\n    {url}")
            return FetchResult.absent(self.default_mime_type)
        if not response.content:
            self.log.warning(f"DEM tile response was empty for {z}/{x}/{y}\n    {url}")
            return FetchResult.absent(self.default_mime_type)

        content_type = response.headers.get("Content-Type", "").split(";", 1)[0].strip().lower()
        if not content_type or content_type == "application/octet-stream":
            content_type = _guess_mime_type(url)
        return FetchResult(data=response.content, mime_type=content_type or None)

    def close(self) -> None:
        with self._lock:
            for session in self._sessions:
                session.close()
            self._sessions.clear()
        self._local = threading.local()
