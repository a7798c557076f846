"""Resolve media URIs to local files telegram-cli can upload.

telegram-cli only accepts paths on its own filesystem. Remote URLs are
downloaded into the temp directory first and removed again once the
command that referenced them has finished.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx

logger = logging.getLogger(__name__)

MAX_MEDIA_SIZE = 10 * 1024 * 1024  # 10 MiB
DOWNLOAD_TIMEOUT = 30.0
CHUNK_SIZE = 64 * 1024
TEMP_PREFIX = "tg"


@dataclass
class MediaFile:
    """A media file ready to be referenced by a command."""

    path: str
    size: int
    extension: str = ""
    mime_type: str = ""
    url: str | None = None

    @property
    def is_temporary(self) -> bool:
        """True if the file was downloaded and should be cleaned up."""
        return self.url is not None


def _is_url(uri: str) -> bool:
    parsed = urlparse(uri)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _extension(name: str) -> str:
    return Path(name).suffix.lstrip(".")


class MediaFetcher:
    """Turns a URL or local path into a :class:`MediaFile`.

    Usage::

        with MediaFetcher() as fetcher:
            with fetcher.fetched("https://example.com/cat.jpg") as media:
                if media is not None:
                    engine.execute(build_send_media("photo", peer, media.path))
    """

    def __init__(
        self,
        max_size: int = MAX_MEDIA_SIZE,
        timeout: float = DOWNLOAD_TIMEOUT,
        temp_dir: str | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._max_size = max_size
        self._temp_dir = temp_dir or tempfile.gettempdir()
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(
            timeout=timeout, follow_redirects=True
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> MediaFetcher:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def resolve(self, uri: str) -> MediaFile | None:
        """Locate or download ``uri``.

        Returns:
            A MediaFile, or None if the resource does not exist, cannot be
            fetched, or is larger than ``max_size``.
        """
        if _is_url(uri):
            return self._download(uri)

        if os.path.isfile(uri):
            size = os.path.getsize(uri)
            if size > self._max_size:
                logger.warning(
                    "Local file %s is %d bytes (limit %d)", uri, size, self._max_size
                )
                return None
            return MediaFile(path=uri, size=size, extension=_extension(uri))

        logger.warning("Media %r is neither a URL nor an existing file", uri)
        return None

    def cleanup(self, media: MediaFile | None) -> None:
        """Delete ``media`` if it was downloaded. Local files are untouched."""
        if media is None or not media.is_temporary:
            return
        try:
            os.unlink(media.path)
            logger.debug("Removed temporary media %s", media.path)
        except FileNotFoundError:
            pass

    @contextmanager
    def fetched(self, uri: str) -> Iterator[MediaFile | None]:
        """Resolve ``uri`` and always clean up when the block exits."""
        media = self.resolve(uri)
        try:
            yield media
        finally:
            self.cleanup(media)

    def _probe(self, url: str) -> MediaFile | None:
        try:
            response = self._client.head(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Media URL %s is unavailable: %s", url, e)
            return None

        size = int(response.headers.get("content-length", 0) or 0)
        if size > self._max_size:
            logger.warning(
                "Media URL %s is %d bytes (limit %d)", url, size, self._max_size
            )
            return None

        return MediaFile(
            path="",
            size=size,
            extension=_extension(unquote(urlparse(url).path)),
            mime_type=response.headers.get("content-type", "").split(";")[0].strip(),
            url=url,
        )

    def _temp_path(self, url: str, extension: str) -> str:
        """Keep the URL's file name unless it is taken, else make one up."""
        name = os.path.basename(unquote(urlparse(url).path))
        if name:
            candidate = os.path.join(self._temp_dir, name)
            if not os.path.exists(candidate):
                return candidate

        suffix = f".{extension}" if extension else ""
        fd, path = tempfile.mkstemp(
            prefix=TEMP_PREFIX, suffix=suffix, dir=self._temp_dir
        )
        os.close(fd)
        return path

    def _download(self, url: str) -> MediaFile | None:
        media = self._probe(url)
        if media is None:
            return None

        media.path = self._temp_path(url, media.extension)
        written = 0
        try:
            with self._client.stream("GET", url) as response:
                response.raise_for_status()
                with open(media.path, "wb") as f:
                    for chunk in response.iter_bytes(CHUNK_SIZE):
                        written += len(chunk)
                        if written > self._max_size:
                            raise ValueError(
                                f"download exceeded {self._max_size} bytes"
                            )
                        f.write(chunk)
        except (httpx.HTTPError, OSError, ValueError) as e:
            logger.warning("Could not download %s: %s", url, e)
            self.cleanup(media)
            return None

        media.size = written
        logger.debug("Downloaded %s to %s (%d bytes)", url, media.path, written)
        return media
