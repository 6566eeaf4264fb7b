"""
dicom-test-files: DICOM sample files for testing DICOM parsers.

Files are downloaded on first use and cached locally, so test suites only
fetch what they need.

The bundled checksum manifest is empty. Generate one from the data folder
with `dicom-test-files manifest` and point DICOM_TEST_FILES_MANIFEST at it
before resolving files:

    import dicomtestfiles

    # with DICOM_TEST_FILES_MANIFEST=/path/to/checksums.yaml
    liver = dicomtestfiles.path("pydicom/liver.dcm")
"""

import threading
from pathlib import Path
from typing import Optional

from dicomtestfiles.cache import CacheEntry, CacheStore
from dicomtestfiles.config import ResolverConfig
from dicomtestfiles.errors import DicomTestFilesError, FetchError, IntegrityError, NotFoundError
from dicomtestfiles.fetcher import Fetcher
from dicomtestfiles.registry import Registry, RemoteSource
from dicomtestfiles.resolver import FixtureResolver

__version__ = "0.1.0"

_default_resolver: Optional[FixtureResolver] = None
_default_lock = threading.Lock()


def default_resolver() -> FixtureResolver:
    """Resolver configured from the environment, created on first use."""
    global _default_resolver
    with _default_lock:
        if _default_resolver is None:
            _default_resolver = FixtureResolver(ResolverConfig.from_env())
        return _default_resolver


def path(identifier: str) -> Path:
    """
    Fetch a test file by its relative path if it has not been downloaded yet,
    and return its path in the local file system.
    """
    return default_resolver().get(identifier)


__all__ = [
    "path",
    "default_resolver",
    "FixtureResolver",
    "ResolverConfig",
    "Registry",
    "RemoteSource",
    "CacheStore",
    "CacheEntry",
    "Fetcher",
    "DicomTestFilesError",
    "NotFoundError",
    "FetchError",
    "IntegrityError",
]
