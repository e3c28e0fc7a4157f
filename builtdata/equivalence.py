"""
Equivalence checks between a local and a remote artifact.

The default strategy compares size and modification time only. Built data
files can be gigabytes, so hashing both sides on every run is too slow.
The cost is that a file rewritten with the same size and timestamp but
different bytes is reported as equivalent. Use the "sha256" strategy when
that matters more than run time.
"""

from __future__ import annotations

import logging
from pathlib import Path

from django.conf import settings

from builtdata.exceptions import ConfigurationError
from builtdata.storage import ArtifactStorage

logger = logging.getLogger(__name__)

DEFAULT_MTIME_TOLERANCE = 1.0


class EquivalenceChecker:
    """
    Base class for equivalence strategies.

    A missing file on either side is never equivalent, so the transfer
    engine's existence rules always apply in that case.
    """

    name = ""

    def __init__(self, storage: ArtifactStorage | None = None):
        self.storage = storage or ArtifactStorage()

    def is_equivalent(self, local_path: Path, remote_path: Path) -> bool:
        if not self.storage.exists(local_path) or not self.storage.exists(remote_path):
            return False
        return self._compare(local_path, remote_path)

    def _compare(self, local_path: Path, remote_path: Path) -> bool:
        raise NotImplementedError


class SizeMtimeChecker(EquivalenceChecker):
    """Equal size and modification time within a tolerance."""

    name = "size_mtime"

    def __init__(
        self,
        storage: ArtifactStorage | None = None,
        mtime_tolerance: float | None = None,
    ):
        super().__init__(storage)
        if mtime_tolerance is None:
            mtime_tolerance = getattr(
                settings, "BUILTDATA_MTIME_TOLERANCE", DEFAULT_MTIME_TOLERANCE
            )
        self.mtime_tolerance = float(mtime_tolerance)

    def _compare(self, local_path: Path, remote_path: Path) -> bool:
        local = self.storage.stat(local_path)
        remote = self.storage.stat(remote_path)
        if local is None or remote is None:
            return False
        if local.size != remote.size:
            return False
        return abs(local.mtime - remote.mtime) <= self.mtime_tolerance


class DigestChecker(EquivalenceChecker):
    """Equal SHA256 content digest. Reads both files in full."""

    name = "sha256"

    def _compare(self, local_path: Path, remote_path: Path) -> bool:
        local = self.storage.stat(local_path)
        remote = self.storage.stat(remote_path)
        if local is None or remote is None or local.size != remote.size:
            return False
        return self.storage.digest(local_path) == self.storage.digest(remote_path)


CHECKERS = {
    SizeMtimeChecker.name: SizeMtimeChecker,
    DigestChecker.name: DigestChecker,
}


def get_checker(name: str | None = None, storage: ArtifactStorage | None = None) -> EquivalenceChecker:
    """
    Build the equivalence checker registered under name.

    Args:
        name: Strategy name; defaults to the BUILTDATA_EQUIVALENCE setting

    Raises:
        ConfigurationError: If no strategy has that name
    """
    name = name or getattr(settings, "BUILTDATA_EQUIVALENCE", SizeMtimeChecker.name)
    try:
        checker_class = CHECKERS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown equivalence strategy: {name} (choose from {', '.join(sorted(CHECKERS))})"
        ) from None
    return checker_class(storage=storage)
