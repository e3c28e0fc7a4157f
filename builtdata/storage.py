"""
Filesystem primitives for built data artifacts.

Every read and write the sync and retention engines make against the
working copy or the sync root goes through ArtifactStorage.
"""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import uuid
from dataclasses import dataclass
from fnmatch import fnmatch
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def compute_digest(data: bytes | BinaryIO) -> str:
    """
    Compute SHA256 digest of data.

    Args:
        data: Bytes or file-like object to hash

    Returns:
        Digest string in format "sha256:<hex>"
    """
    hasher = hashlib.sha256()
    if isinstance(data, bytes):
        hasher.update(data)
    else:
        for chunk in iter(lambda: data.read(CHUNK_SIZE), b""):
            hasher.update(chunk)
    return f"sha256:{hasher.hexdigest()}"


@dataclass(frozen=True)
class FileStat:
    """Size and modification time of an artifact file."""

    size: int
    mtime: float


class ArtifactStorage:
    """
    Artifact file operations for the working copy and the sync root.

    Provides existence and stat checks, atomic copies that preserve
    modification times, deletion and pattern-filtered directory listing.
    """

    def exists(self, path: Path) -> bool:
        """Check if a regular file exists at path."""
        return Path(path).is_file()

    def stat(self, path: Path) -> FileStat | None:
        """
        Stat an artifact file.

        Returns:
            FileStat, or None if the file does not exist
        """
        try:
            st = Path(path).stat()
        except FileNotFoundError:
            return None
        return FileStat(size=st.st_size, mtime=st.st_mtime)

    def digest(self, path: Path) -> str:
        """Compute the SHA256 digest of a file's content."""
        with open(path, "rb") as f:
            return compute_digest(f)

    def ensure_directory(self, path: Path) -> None:
        """Create a directory and its parents if they don't exist."""
        Path(path).mkdir(parents=True, exist_ok=True)

    def copy(self, source: Path, target: Path) -> Path:
        """
        Copy a file atomically, preserving its modification time.

        The content is written to a temporary file next to the target and
        renamed over it once complete, so readers never see a partial file.

        Args:
            source: File to copy
            target: Destination path; its directory must exist

        Returns:
            The target path

        Raises:
            OSError: If reading, writing or renaming fails
        """
        source = Path(source)
        target = Path(target)
        tmp_path = target.parent / f".{target.name}.{uuid.uuid4().hex}.tmp"

        try:
            shutil.copy2(source, tmp_path)
            os.replace(tmp_path, target)
        except Exception:
            # Clean up temp file on error
            if tmp_path.exists():
                tmp_path.unlink()
            raise

        logger.debug(f"Copied {source} -> {target}")
        return target

    def delete(self, path: Path) -> bool:
        """
        Delete an artifact file.

        Returns:
            True if the file was deleted, False if it didn't exist

        Raises:
            OSError: If the file exists but cannot be removed
        """
        path = Path(path)
        if not path.exists():
            return False
        path.unlink()
        return True

    def list_matching(self, directory: Path, pattern: str) -> list[Path]:
        """
        List files in a directory whose names match a glob pattern.

        Args:
            directory: Directory to list (not recursive)
            pattern: fnmatch-style name pattern

        Returns:
            Matching file paths sorted by name

        Raises:
            OSError: If the directory cannot be listed
        """
        return sorted(
            entry
            for entry in Path(directory).iterdir()
            if entry.is_file() and fnmatch(entry.name, pattern)
        )
