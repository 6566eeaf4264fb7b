"""
Local cache of downloaded test files.

Files are stored under the cache root at their identifier's relative path,
e.g. "<root>/pydicom/liver.dcm". Every write goes to a temporary file in the
destination directory first and is moved into place with os.replace, so a
partially written file is never visible at its final path.
"""

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from dicomtestfiles.registry import validate_identifier
from dicomtestfiles.utils import checksum_matches, ensure_dir, get_logger

logger = get_logger(__name__)

TEMP_PREFIX = ".dtf-"
TEMP_SUFFIX = ".part"


@dataclass(frozen=True)
class CacheEntry:
    """A file present in the cache."""
    identifier: str
    path: Path
    checksum: str


class CacheStore:
    """
    Directory of previously fetched test files.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def path_for(self, identifier: str) -> Path:
        """
        Get the destination path of a test file in the cache.

        Raises:
            NotFoundError: If the identifier is not a clean relative path
        """
        validate_identifier(identifier)
        return self.root.joinpath(*identifier.split("/"))

    def lookup(self, identifier: str) -> Optional[Path]:
        """
        Find a cached test file.

        Returns:
            Path to the cached file, or None on a cache miss
        """
        path = self.path_for(identifier)
        if path.is_file():
            return path
        return None

    def entry(self, identifier: str, checksum: str) -> Optional[CacheEntry]:
        path = self.lookup(identifier)
        if path is None:
            return None
        return CacheEntry(identifier=identifier, path=path, checksum=checksum)

    def store(self, identifier: str, data: bytes, checksum: str) -> Path:
        """
        Atomically write a test file into the cache.

        Storing the same identifier twice with a matching checksum is a no-op
        that returns the existing path. A cached file with a different
        checksum is treated as corrupt and replaced.

        Args:
            identifier: Relative path of the test file
            data: Verified file contents
            checksum: Checksum of data

        Returns:
            Path to the cached file
        """
        destination = self.path_for(identifier)

        if destination.is_file():
            if checksum_matches(destination, checksum):
                logger.debug(f"Already cached: {identifier}")
                return destination
            logger.warning(f"Replacing corrupt cached file: {destination}")

        ensure_dir(destination.parent)

        fd, tmp_name = tempfile.mkstemp(
            dir=destination.parent,
            prefix=f"{TEMP_PREFIX}{destination.name}.",
            suffix=TEMP_SUFFIX,
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, destination)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        logger.info(f"Cached {identifier} at {destination}")
        return destination

    def remove(self, identifier: str) -> bool:
        """
        Delete a cached test file.

        Returns:
            True if a file was removed
        """
        path = self.lookup(identifier)
        if path is None:
            return False
        path.unlink()
        return True

    def iter_cached(self) -> Iterator[str]:
        """Yield identifiers of all cached files, skipping temporary files."""
        if not self.root.is_dir():
            return
        for path in sorted(self.root.rglob("*")):
            if not path.is_file():
                continue
            if path.name.startswith(TEMP_PREFIX) and path.name.endswith(TEMP_SUFFIX):
                continue
            yield path.relative_to(self.root).as_posix()
