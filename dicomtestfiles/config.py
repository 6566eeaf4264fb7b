"""
Resolver configuration.

The configuration is a plain value passed to the resolver. Only
`ResolverConfig.from_env()` reads the process environment.
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional
from appdirs import user_cache_dir

from dicomtestfiles.utils import get_module_dir

APP_NAME = "dicom-test-files"

DEFAULT_BASE_URL = "https://raw.githubusercontent.com/robyoung/dicom-test-files/master/data/"
RAW_GITHUBUSERCONTENT_URL = "https://raw.githubusercontent.com"

DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRIES = 0
DEFAULT_CHUNK_SIZE = 8192

ENV_CACHE_DIR = "DICOM_TEST_FILES_CACHE"
ENV_BASE_URL = "DICOM_TEST_FILES_URL"
ENV_MANIFEST = "DICOM_TEST_FILES_MANIFEST"
ENV_TIMEOUT = "DICOM_TEST_FILES_TIMEOUT"
ENV_RETRIES = "DICOM_TEST_FILES_RETRIES"


def default_cache_dir() -> Path:
    """Per-user cache directory for downloaded test files."""
    return Path(user_cache_dir(APP_NAME))


def default_manifest_path() -> Path:
    """Checksum manifest shipped with the package."""
    return get_module_dir() / "checksums.yaml"


def normalize_base_url(url: str) -> str:
    """Ensure the base URL ends with a slash so identifiers can be appended."""
    return url if url.endswith("/") else f"{url}/"


def resolve_base_url(environ: Optional[Mapping[str, str]] = None) -> str:
    """
    Determine the base URL of the data set in this environment.

    An explicit DICOM_TEST_FILES_URL always wins. On GitHub Actions, a pull
    request against the dicom-test-files repository itself is served from
    the pull request's head branch, so new files can be tested before merge.

    Args:
        environ: Environment mapping (default: os.environ)

    Returns:
        Base URL ending with "/"

    Raises:
        ValueError: If running a pull request build without GITHUB_HEAD_REF
    """
    env = os.environ if environ is None else environ

    url = env.get(ENV_BASE_URL, "")
    if url:
        return normalize_base_url(url)

    if env.get("CI", "") == "true":
        github_repository = env.get("GITHUB_REPOSITORY", "")
        if github_repository.endswith("/dicom-test-files"):
            if env.get("GITHUB_EVENT_NAME", "") == "pull_request":
                head_ref = env.get("GITHUB_HEAD_REF", "")
                if not head_ref:
                    raise ValueError("GITHUB_HEAD_REF is not set for a pull request build")
                return f"{RAW_GITHUBUSERCONTENT_URL}/{github_repository}/{head_ref}/data/"

    return DEFAULT_BASE_URL


def _parse_number(env: Mapping[str, str], name: str, default, cast, positive: bool = False):
    raw = env.get(name, "")
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {raw!r}")
    if value < 0 or (positive and value == 0):
        raise ValueError(f"{name} is out of range: {raw!r}")
    return value


@dataclass(frozen=True)
class ResolverConfig:
    """
    Settings for a FixtureResolver.

    Attributes:
        cache_dir: Root directory for downloaded files
        base_url: Remote location of the data folder, ending with "/"
        manifest: Path to the checksum manifest
        timeout: Seconds before a single request is abandoned
        retries: Extra fetch attempts after a network failure
        chunk_size: Download chunk size in bytes
        progress: Show a progress bar while downloading
    """
    cache_dir: Path
    base_url: str = DEFAULT_BASE_URL
    manifest: Optional[Path] = None
    timeout: float = DEFAULT_TIMEOUT
    retries: int = DEFAULT_RETRIES
    chunk_size: int = DEFAULT_CHUNK_SIZE
    progress: bool = False

    def __post_init__(self):
        object.__setattr__(self, "cache_dir", Path(self.cache_dir))
        object.__setattr__(self, "base_url", normalize_base_url(self.base_url))
        if self.manifest is None:
            object.__setattr__(self, "manifest", default_manifest_path())
        else:
            object.__setattr__(self, "manifest", Path(self.manifest))
        assert self.timeout > 0, "Timeout must be positive."
        assert self.retries >= 0, "Retries cannot be negative."
        assert self.chunk_size > 0, "Chunk size must be positive."

    @staticmethod
    def from_env(environ: Optional[Mapping[str, str]] = None) -> "ResolverConfig":
        """
        Build a configuration from environment variables.

        Args:
            environ: Environment mapping (default: os.environ)

        Returns:
            ResolverConfig instance

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        env = os.environ if environ is None else environ

        cache_dir = env.get(ENV_CACHE_DIR, "")
        manifest = env.get(ENV_MANIFEST, "")

        return ResolverConfig(
            cache_dir=Path(cache_dir).expanduser() if cache_dir else default_cache_dir(),
            base_url=resolve_base_url(env),
            manifest=Path(manifest).expanduser() if manifest else None,
            timeout=_parse_number(env, ENV_TIMEOUT, DEFAULT_TIMEOUT, float, positive=True),
            retries=_parse_number(env, ENV_RETRIES, DEFAULT_RETRIES, int),
        )

    def with_overrides(self, **changes) -> "ResolverConfig":
        """
        Return a copy with some settings replaced. None values are ignored.
        """
        changes = {key: value for key, value in changes.items() if value is not None}
        return replace(self, **changes)
