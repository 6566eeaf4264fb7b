"""
Resolve test file identifiers to local paths, downloading on first use.
"""

import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from dicomtestfiles.cache import CacheStore
from dicomtestfiles.config import ResolverConfig
from dicomtestfiles.errors import IntegrityError
from dicomtestfiles.fetcher import Fetcher
from dicomtestfiles.registry import Registry
from dicomtestfiles.utils import compute_checksum, get_logger

logger = get_logger(__name__)


class FixtureResolver:
    """
    Makes test files available on local storage.

    Files already in the cache are returned without re-verification. Missing
    files are downloaded, checked against the manifest checksum and stored.
    """

    def __init__(
        self,
        config: ResolverConfig,
        registry: Optional[Registry] = None,
        fetcher: Optional[Fetcher] = None,
        cache: Optional[CacheStore] = None,
    ):
        self.config = config

        if registry is None:
            registry = Registry.from_yaml(config.manifest, base_url=config.base_url)
        if fetcher is None:
            fetcher = Fetcher(
                timeout=config.timeout,
                retries=config.retries,
                chunk_size=config.chunk_size,
                progress=config.progress,
            )
        if cache is None:
            cache = CacheStore(config.cache_dir)

        self.registry = registry
        self.fetcher = fetcher
        self.cache = cache

        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, identifier: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(identifier, threading.Lock())

    def get(self, identifier: str) -> Path:
        """
        Get the local path of a test file, downloading it if needed.

        Args:
            identifier: Relative path of the test file, e.g. "pydicom/liver.dcm"

        Returns:
            Path to the file in the cache

        Raises:
            NotFoundError: If the identifier is not in the manifest
            FetchError: If the file cannot be downloaded
            IntegrityError: If the downloaded contents do not match the checksum
        """
        source = self.registry.resolve(identifier)

        cached = self.cache.lookup(identifier)
        if cached is not None:
            logger.debug(f"Cache hit: {identifier}")
            return cached

        with self._lock_for(identifier):
            # another thread may have stored it while we waited
            cached = self.cache.lookup(identifier)
            if cached is not None:
                return cached

            data = self.fetcher.fetch(source)

            actual = compute_checksum(data, source.algorithm)
            if actual != source.digest:
                logger.error(f"Checksum mismatch for {identifier}, discarding download")
                raise IntegrityError(identifier, source.checksum, f"{source.algorithm}:{actual}")

            return self.cache.store(identifier, data, source.checksum)

    def read_bytes(self, identifier: str) -> bytes:
        """Get the contents of a test file."""
        return self.get(identifier).read_bytes()

    def get_many(self, identifiers: Iterable[str]) -> List[Path]:
        """
        Get several test files, stopping at the first failure.
        """
        return [self.get(identifier) for identifier in identifiers]

    def prefetch_all(self) -> List[Path]:
        """
        Download every test file in the manifest.

        Note that this may be expensive. Prefer `get` for the files you need.
        """
        return self.get_many(self.registry.list_identifiers())

    def is_cached(self, identifier: str) -> bool:
        return self.cache.lookup(identifier) is not None

    def verify(self, identifier: str) -> bool:
        """
        Re-check a cached file against its manifest checksum.

        Args:
            identifier: Relative path of the test file

        Returns:
            True if the cached file is intact, False if it is not cached

        Raises:
            NotFoundError: If the identifier is not in the manifest
            IntegrityError: If the cached file does not match its checksum
        """
        source = self.registry.resolve(identifier)

        entry = self.cache.entry(identifier, source.checksum)
        if entry is None:
            return False

        actual = compute_checksum(entry.path, source.algorithm)
        if actual != source.digest:
            raise IntegrityError(identifier, source.checksum, f"{source.algorithm}:{actual}")
        return True
