"""
Registry of known DICOM test files and their checksums.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from dicomtestfiles.config import DEFAULT_BASE_URL, ENV_MANIFEST, default_manifest_path, normalize_base_url
from dicomtestfiles.errors import NotFoundError
from dicomtestfiles.utils import (
    DEFAULT_ALGORITHM,
    compute_checksum,
    get_logger,
    load_yaml,
    save_yaml,
    split_checksum,
)

logger = get_logger(__name__)


def validate_identifier(identifier: str) -> str:
    """
    Check that an identifier is a clean relative path.

    Args:
        identifier: Forward-slash relative path, e.g. "pydicom/liver.dcm"

    Returns:
        The identifier unchanged

    Raises:
        NotFoundError: If the identifier could escape the cache directory
    """
    if not isinstance(identifier, str) or not identifier:
        raise NotFoundError(str(identifier), "identifier must be a non-empty string")
    if "\\" in identifier or "\x00" in identifier:
        raise NotFoundError(identifier, "identifier must use forward slashes")

    if identifier.startswith("/"):
        raise NotFoundError(identifier, "identifier must be a relative path")
    if any(part in ("", ".", "..") for part in identifier.split("/")):
        raise NotFoundError(identifier, "identifier contains an empty, '.' or '..' segment")

    return identifier


@dataclass(frozen=True)
class RemoteSource:
    """
    Where a test file lives and what its contents must hash to.
    """
    identifier: str
    url: str
    checksum: str

    def __post_init__(self):
        assert isinstance(self.identifier, str), "Identifier must be a string."
        assert isinstance(self.url, str), "URL must be a string."
        assert isinstance(self.checksum, str), "Checksum must be a string."
        assert len(self.url) > 0, "URL cannot be empty."
        split_checksum(self.checksum)

    @property
    def algorithm(self) -> str:
        return split_checksum(self.checksum)[0]

    @property
    def digest(self) -> str:
        return split_checksum(self.checksum)[1]


class Registry:
    """
    Maps test file identifiers to their remote location and checksum.

    Lookups are pure: the manifest is read once, at construction.
    """

    def __init__(self, checksums: Mapping[str, str], base_url: str = DEFAULT_BASE_URL):
        self._base_url = normalize_base_url(base_url)
        self._checksums: Dict[str, str] = {}

        for identifier, checksum in checksums.items():
            validate_identifier(identifier)
            if not isinstance(checksum, str):
                raise ValueError(f"Checksum for '{identifier}' must be a string")
            split_checksum(checksum)
            self._checksums[identifier] = checksum

    @staticmethod
    def from_yaml(manifest: Optional[Path] = None, base_url: str = DEFAULT_BASE_URL) -> "Registry":
        """
        Load a registry from a checksum manifest.

        Args:
            manifest: Path to manifest YAML (default: bundled checksums.yaml)
            base_url: Remote location of the data folder

        Returns:
            Registry instance

        Raises:
            FileNotFoundError: If the manifest does not exist
            ValueError: If the manifest is malformed
        """
        manifest = manifest or default_manifest_path()
        data = load_yaml(manifest)
        if not isinstance(data, dict):
            raise ValueError(f"Manifest {manifest} must be a mapping")

        files = data.get("files")
        if files is None:
            files = {}
        if not isinstance(files, dict):
            raise ValueError(f"Manifest {manifest} must contain a 'files' mapping")

        logger.debug(f"Loaded {len(files)} checksum(s) from {manifest}")
        return Registry(files, base_url=base_url)

    def resolve(self, identifier: str) -> RemoteSource:
        """
        Look up the remote source of a test file.

        Args:
            identifier: Relative path of the test file

        Returns:
            RemoteSource for the identifier

        Raises:
            NotFoundError: If the identifier is not in the manifest
        """
        validate_identifier(identifier)
        try:
            checksum = self._checksums[identifier]
        except KeyError:
            if not self._checksums:
                raise NotFoundError(
                    identifier,
                    f"the checksum manifest is empty; generate one with "
                    f"'dicom-test-files manifest' and set {ENV_MANIFEST}",
                ) from None
            raise NotFoundError(identifier) from None

        return RemoteSource(
            identifier=identifier,
            url=self.url_for(identifier),
            checksum=checksum,
        )

    def url_for(self, identifier: str) -> str:
        return self._base_url + identifier

    def list_identifiers(self) -> List[str]:
        """
        List all identifiers in the registry.

        Returns:
            Sorted list of identifiers
        """
        return sorted(self._checksums)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._checksums

    def __len__(self) -> int:
        return len(self._checksums)


def generate_manifest(source_dir: Path) -> Dict[str, str]:
    """
    Compute checksums for every file below a data directory.

    Args:
        source_dir: Checkout of the data folder

    Returns:
        Mapping of forward-slash relative path to "sha256:<hex>", sorted

    Raises:
        NotADirectoryError: If source_dir is not a directory
    """
    if not source_dir.is_dir():
        raise NotADirectoryError(f"Not a directory: {source_dir}")

    checksums = {}
    for dirpath, dirnames, filenames in os.walk(source_dir):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for filename in sorted(filenames):
            if filename.startswith("."):
                continue
            file_path = Path(dirpath) / filename
            identifier = file_path.relative_to(source_dir).as_posix()
            checksums[identifier] = f"{DEFAULT_ALGORITHM}:{compute_checksum(file_path)}"

    logger.info(f"Computed {len(checksums)} checksum(s) under {source_dir}")
    return dict(sorted(checksums.items()))


def write_manifest(source_dir: Path, output: Path) -> Path:
    """
    Generate a checksum manifest and save it as YAML.

    Args:
        source_dir: Checkout of the data folder
        output: Output file

    Returns:
        Path of the written manifest
    """
    save_yaml({"files": generate_manifest(source_dir)}, output)
    logger.info(f"Saved manifest to: {output}")
    return output
