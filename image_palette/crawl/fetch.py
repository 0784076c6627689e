"""HTTP fetching utilities for the image palette pipeline."""

from __future__ import annotations

import io
import logging
from contextlib import contextmanager
from threading import Lock
from typing import BinaryIO, ContextManager, Iterator, Mapping, Protocol
from urllib.parse import urlparse

import requests
from requests import Session

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 10.0
_DEFAULT_MAX_BYTES = 50 * 1024 * 1024
_CHUNK_SIZE = 64 * 1024
_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

_session_lock = Lock()
_session: Session | None = None


class FetchError(Exception):
    """Raised when the body of a URL could not be retrieved."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class Fetcher(Protocol):
    """Anything that can open a URL as a scoped binary stream."""

    def open(self, url: str) -> ContextManager[BinaryIO]:
        ...


def _get_session() -> Session:
    """Return a shared requests session configured with default headers."""
    global _session
    if _session is None:
        with _session_lock:
            if _session is None:
                session = requests.Session()
                session.headers.update(
                    {
                        "User-Agent": _USER_AGENT,
                        "Accept": "image/*,*/*;q=0.8",
                        "Accept-Language": "en-US,en;q=0.5",
                    }
                )
                _session = session
    return _session


def ensure_http_scheme(url: str) -> str:
    """Ensure *url* is qualified with an HTTP scheme, defaulting to https."""
    cleaned = url.strip()
    if not cleaned:
        return cleaned
    if cleaned.startswith(("http://", "https://")):
        return cleaned
    if cleaned.startswith("//"):
        return f"https:{cleaned}"
    parsed = urlparse(cleaned)
    if parsed.scheme:
        return cleaned
    return f"https://{cleaned}"


class HttpFetcher:
    """Fetch URL bodies over HTTP with a per-request timeout and size cap.

    A completed response is content whatever its status, so an error page
    flows on like any other body. Set *skip_error_status* to treat non-2xx
    responses as fetch failures instead.
    """

    def __init__(
        self,
        timeout: float = _DEFAULT_TIMEOUT,
        max_bytes: int = _DEFAULT_MAX_BYTES,
        user_agent: str = _USER_AGENT,
        skip_error_status: bool = False,
        session: Session | None = None,
    ) -> None:
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.user_agent = user_agent
        self.skip_error_status = skip_error_status
        self._session = session

    @property
    def session(self) -> Session:
        return self._session if self._session is not None else _get_session()

    @contextmanager
    def open(self, url: str) -> Iterator[BinaryIO]:
        """Yield the body of *url* as a binary stream.

        The underlying response is closed when the block exits, whichever
        way it exits. Transport failures and oversized bodies raise
        :class:`FetchError` before anything is yielded.
        """
        target_url = ensure_http_scheme(url)
        if not target_url:
            raise FetchError(url, "empty URL")
        try:
            response = self.session.get(
                target_url,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
                stream=True,
                allow_redirects=True,
            )
        except requests.RequestException as exc:
            raise FetchError(url, str(exc)) from exc

        try:
            if not 200 <= response.status_code < 300:
                if self.skip_error_status:
                    raise FetchError(url, f"HTTP status {response.status_code}")
                logger.debug("Using %s body of %s as content", response.status_code, url)
            body = self._read_body(url, response)
            yield io.BytesIO(body)
        finally:
            response.close()

    def _read_body(self, url: str, response: requests.Response) -> bytes:
        declared = _declared_length(response.headers)
        if declared is not None and declared > self.max_bytes:
            raise FetchError(url, f"body of {declared} bytes exceeds {self.max_bytes}")
        buffer = bytearray()
        try:
            for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                buffer.extend(chunk)
                if len(buffer) > self.max_bytes:
                    raise FetchError(url, f"body exceeds {self.max_bytes} bytes")
        except requests.RequestException as exc:
            raise FetchError(url, str(exc)) from exc
        logger.debug("Fetched %d bytes from %s", len(buffer), url)
        return bytes(buffer)


def _declared_length(headers: Mapping[str, str]) -> int | None:
    value = headers.get("Content-Length")
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None
