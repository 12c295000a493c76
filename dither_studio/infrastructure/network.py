from __future__ import annotations

import io
import logging
import posixpath
import time
from typing import Callable, Optional

from urllib.parse import urlsplit, urlunsplit

import requests
from PIL import Image, UnidentifiedImageError

from ..buffer import ImageBuffer
from ..config import SETTINGS
from ..errors import SourceFetchError, SourceTooLargeError


SessionFactory = Callable[[], requests.Session]
Sleeper = Callable[[float], None]

USER_AGENT = "dither-studio/1.0"
RETRY_BACKOFF = 0.4

logger = logging.getLogger(__name__)


def _join_path(base_path: str, relative: str) -> str:
    base = base_path if base_path.endswith("/") else f"{base_path or ''}/"
    joined = posixpath.normpath(f"{base}{relative}")
    return joined if joined.startswith("/") else f"/{joined}"


def apply_base_and_path(
    url: str,
    *,
    base_url: Optional[str] = None,
    path_override: Optional[str] = None,
) -> str:
    """Rebase ``url`` onto ``base_url`` and/or replace its path.

    Relative overrides are joined onto the base path; absolute ones replace it.
    The query string of ``url`` is kept.
    """
    if not base_url and path_override is None:
        return url

    parts = urlsplit(url)
    path = path_override if path_override is not None else parts.path

    if not base_url:
        return urlunsplit(parts._replace(path=path))

    base = urlsplit(base_url)
    if not base.scheme or not base.netloc:
        raise ValueError(f"Invalid source_base override: {base_url}")
    if path and not path.startswith("/"):
        path = _join_path(base.path, path)
    else:
        path = path or base.path
    return urlunsplit(base._replace(path=path or "", query=parts.query, fragment=parts.fragment))


def decode_image(data: bytes, max_pixels: Optional[int] = None) -> ImageBuffer:
    """Decode ``data`` into a buffer, refusing images above ``max_pixels``.

    The size is checked from the header, before any pixel data is decoded.
    """
    limit = SETTINGS.max_pixels if max_pixels is None else max_pixels
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            if width * height > limit:
                raise SourceTooLargeError(f"Source is {width}x{height}; the limit is {limit} pixels")
            return ImageBuffer.from_image(img)
    except Image.DecompressionBombError as exc:
        raise SourceTooLargeError(str(exc)) from exc
    except (UnidentifiedImageError, OSError) as exc:
        raise SourceFetchError(f"Source did not return a decodable image: {exc}") from exc


class SourceFetcher:
    def __init__(
        self,
        session_factory: Optional[SessionFactory] = None,
        *,
        retries: Optional[int] = None,
        timeout: Optional[float] = None,
        max_pixels: Optional[int] = None,
        sleep: Sleeper = time.sleep,
    ) -> None:
        self._session_factory = session_factory or requests.Session
        self._session = self._create_session()
        self.retries = SETTINGS.retries if retries is None else retries
        self.timeout = SETTINGS.timeout if timeout is None else timeout
        self.max_pixels = SETTINGS.max_pixels if max_pixels is None else max_pixels
        self._sleep = sleep

    def _create_session(self) -> requests.Session:
        session = self._session_factory()
        session.headers.update({"User-Agent": USER_AGENT})
        return session

    def fetch(self, source_url: Optional[str] = None) -> ImageBuffer:
        target_url = source_url or SETTINGS.source_url

        last_exception: Optional[Exception] = None
        attempts = self.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                response = self._session.get(target_url, timeout=self.timeout)
                response.raise_for_status()
            except requests.RequestException as exc:
                last_exception = exc
                logger.warning(
                    "Fetching %s failed (attempt %d/%d): %s", target_url, attempt, attempts, exc
                )
                if attempt < attempts:
                    self._sleep(RETRY_BACKOFF * attempt)
                continue
            return decode_image(response.content, self.max_pixels)
        raise SourceFetchError(f"Could not fetch {target_url}: {last_exception}") from last_exception
