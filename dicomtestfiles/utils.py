"""
Utility functions for dicom-test-files.
"""

import hashlib
import logging
import sys
import yaml
from pathlib import Path
from typing import Any, Dict, Tuple, Union

DEFAULT_ALGORITHM = "sha256"


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger.

    Args:
        name: Logger name

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

    return logger


def get_module_dir() -> Path:
    """
    Get the directory containing the dicomtestfiles package.

    Returns:
        Path to dicomtestfiles directory
    """
    return Path(__file__).parent


def load_yaml(filepath: Path) -> Dict[str, Any]:
    """
    Load a YAML file.

    Args:
        filepath: Path to YAML file

    Returns:
        Dictionary of YAML contents

    Raises:
        FileNotFoundError: If file doesn't exist
        yaml.YAMLError: If YAML parsing fails
    """
    if not filepath.exists():
        raise FileNotFoundError(f"YAML file not found: {filepath}")

    with open(filepath, 'r') as f:
        return yaml.safe_load(f) or {}


def save_yaml(data: Dict[str, Any], filepath: Path) -> None:
    """
    Save a dictionary to a YAML file.

    Args:
        data: Dictionary to save
        filepath: Output file path
    """
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, 'w') as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def ensure_dir(path: Path) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path

    Returns:
        The same path (for chaining)
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def split_checksum(checksum: str) -> Tuple[str, str]:
    """
    Split a checksum string into algorithm and hex digest.

    Accepts "sha256:<hex>", "md5:<hex>" or a bare hex digest, which is
    taken to be SHA-256.

    Raises:
        ValueError: If the checksum is empty or the algorithm is unknown
    """
    if not checksum:
        raise ValueError("Checksum cannot be empty")

    if ':' in checksum:
        algorithm, expected_hash = checksum.split(':', 1)
        algorithm = algorithm.lower()
    else:
        algorithm, expected_hash = DEFAULT_ALGORITHM, checksum

    if algorithm not in hashlib.algorithms_available:
        raise ValueError(f"Unsupported checksum algorithm: {algorithm}")

    return algorithm, expected_hash.lower()


def compute_checksum(data: Union[bytes, Path], algorithm: str = DEFAULT_ALGORITHM,
                     chunk_size: int = 8192) -> str:
    """
    Compute the hex digest of some bytes or of a file's contents.

    Args:
        data: Raw bytes, or a path to a file read in chunks
        algorithm: hashlib algorithm name
        chunk_size: Read size when hashing a file

    Returns:
        Hex digest string
    """
    hasher = hashlib.new(algorithm)

    if isinstance(data, Path):
        with open(data, 'rb') as f:
            for chunk in iter(lambda: f.read(chunk_size), b''):
                hasher.update(chunk)
    else:
        hasher.update(data)

    return hasher.hexdigest()


def checksum_matches(data: Union[bytes, Path], expected_checksum: str) -> bool:
    """
    Verify bytes or a file against an expected checksum.

    Args:
        data: Raw bytes or file path
        expected_checksum: Expected checksum (format: "sha256:hash" or just "hash")

    Returns:
        True if checksum matches
    """
    algorithm, expected_hash = split_checksum(expected_checksum)
    return compute_checksum(data, algorithm) == expected_hash


def format_size(num_bytes: int) -> str:
    """Human readable file size."""
    size = float(num_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"
