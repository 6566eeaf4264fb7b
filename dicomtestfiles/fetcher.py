"""
HTTP client for downloading test files from the remote archive.
"""

import io
from typing import Optional

import requests
from tqdm import tqdm

from dicomtestfiles.config import DEFAULT_CHUNK_SIZE, DEFAULT_RETRIES, DEFAULT_TIMEOUT
from dicomtestfiles.errors import FetchError
from dicomtestfiles.registry import RemoteSource
from dicomtestfiles.utils import get_logger

logger = get_logger(__name__)


def _content_length(headers) -> int:
    """Declared body size, or 0 when the header is missing or malformed."""
    raw = headers.get('content-length', '')
    try:
        size = int(raw)
    except (TypeError, ValueError):
        if raw:
            logger.warning(f"Ignoring malformed content-length header: {raw!r}")
        return 0
    return max(size, 0)


class Fetcher:
    """
    Downloads the raw contents of a test file.

    The fetcher does not verify checksums; that is the caller's job, so a
    failed verification is never retried here.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = DEFAULT_RETRIES,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        progress: bool = False,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize fetcher.

        Args:
            timeout: Seconds before a request is abandoned
            retries: Extra attempts after a network failure (default: none)
            chunk_size: Download chunk size in bytes
            progress: Show a tqdm progress bar per download
            session: Optional requests session (default: a new one)

        Raises:
            ValueError: If retries is negative or timeout/chunk_size not positive
        """
        if retries < 0:
            raise ValueError(f"Retries cannot be negative, got {retries}")
        if timeout <= 0:
            raise ValueError(f"Timeout must be positive, got {timeout}")
        if chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive, got {chunk_size}")

        self.timeout = timeout
        self.retries = retries
        self.chunk_size = chunk_size
        self.progress = progress
        self.session = session if session is not None else requests.Session()

    def fetch(self, source: RemoteSource) -> bytes:
        """
        Download a test file.

        Args:
            source: Remote source to download

        Returns:
            File contents

        Raises:
            FetchError: If the download fails after all attempts
        """
        attempts = self.retries + 1

        for attempt in range(1, attempts + 1):
            try:
                return self._fetch_once(source)
            except FetchError as e:
                if attempt == attempts:
                    raise
                logger.warning(f"Attempt {attempt}/{attempts} failed, retrying: {e}")

    def _fetch_once(self, source: RemoteSource) -> bytes:
        logger.info(f"Downloading: {source.url}")

        try:
            response = self.session.get(source.url, stream=True, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchError(source.url, str(e)) from e

        try:
            try:
                response.raise_for_status()
            except requests.HTTPError as e:
                raise FetchError(source.url, str(e), status_code=response.status_code) from e

            total_size = _content_length(response.headers)
            buffer = io.BytesIO()

            with tqdm(total=total_size or None, unit='B', unit_scale=True,
                      desc=source.identifier, disable=not self.progress) as pbar:
                for chunk in response.iter_content(chunk_size=self.chunk_size):
                    if chunk:
                        buffer.write(chunk)
                        pbar.update(len(chunk))

        except requests.RequestException as e:
            raise FetchError(source.url, str(e)) from e
        finally:
            response.close()

        data = buffer.getvalue()
        # content-length counts encoded bytes; iter_content yields decoded ones
        encoded = response.headers.get('content-encoding', 'identity') != 'identity'
        if total_size and not encoded and len(data) != total_size:
            raise FetchError(
                source.url, f"incomplete download: got {len(data)} of {total_size} bytes"
            )

        return data
