"""
Retention for remote built data versions.

Every push of a new content id leaves the previous versions behind in the
sync root. Pruning removes the versions superseded by the one the working
copy references, without touching anything a more recent contributor may
have pushed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from builtdata.exceptions import RetentionError
from builtdata.locator import ArtifactLocation, TrackedAsset
from builtdata.storage import ArtifactStorage, FileStat

logger = logging.getLogger(__name__)

CURRENT_MISSING = "current_missing"
LISTING_FAILED = "listing_failed"


@dataclass
class PruneResult:
    """Result of pruning one asset's retention group."""

    asset: TrackedAsset
    deleted: list[Path] = field(default_factory=list)
    kept_newer: list[Path] = field(default_factory=list)
    skipped_reason: str | None = None
    dry_run: bool = False

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None


class RetentionEngine:
    """
    Prunes superseded remote versions of an asset's built data.

    A version is deleted only when:
    1. The version the working copy references exists remotely
    2. Its content id differs from the referenced one
    3. It was last modified no later than the referenced version
    """

    def __init__(self, storage: ArtifactStorage | None = None):
        self.storage = storage or ArtifactStorage()

    def prune(
        self,
        asset: TrackedAsset,
        location: ArtifactLocation,
        dry_run: bool = False,
        current: FileStat | None = None,
    ) -> PruneResult:
        """
        Prune one asset's retention group.

        Args:
            asset: The tracked asset, at the content id of the working copy
            location: The asset's artifact location
            dry_run: Report candidates without deleting them
            current: Stat to use for the current version instead of the
                remote file, e.g. the local copy a dry-run push would send

        Returns:
            PruneResult listing deleted (or would-be deleted) versions

        Raises:
            RetentionError: If a superseded version cannot be deleted
        """
        result = PruneResult(asset=asset, dry_run=dry_run)

        if current is None:
            try:
                current = self.storage.stat(location.remote_path)
            except OSError as e:
                logger.warning(f"Not pruning {asset.logical_path}: cannot read {location.remote_dir}: {e}")
                result.skipped_reason = LISTING_FAILED
                return result

        # The working copy may be behind what others have pushed; without the
        # referenced version present there is no safe cutoff.
        if current is None:
            logger.warning(
                f"Not pruning {asset.logical_path}: current version "
                f"{location.remote_path.name} is not in the sync root"
            )
            result.skipped_reason = CURRENT_MISSING
            return result

        try:
            group = self.storage.list_matching(location.remote_dir, location.retention_pattern)
        except FileNotFoundError:
            # Only reachable with a stand-in current version
            group = []
        except OSError as e:
            logger.warning(f"Not pruning {asset.logical_path}: cannot list {location.remote_dir}: {e}")
            result.skipped_reason = LISTING_FAILED
            return result

        for path in group:
            content_id = location.content_id_from_name(path.name)
            if content_id is None or content_id == location.content_id:
                continue

            version = self.storage.stat(path)
            if version is None:
                # Removed since the listing
                continue

            if version.mtime > current.mtime:
                logger.info(f"Keeping {path.name}: newer than current version {location.content_id}")
                result.kept_newer.append(path)
                continue

            if dry_run:
                logger.info(f"[DRY RUN] Would have pruned {path}")
            else:
                try:
                    self.storage.delete(path)
                except OSError as e:
                    raise RetentionError(f"Failed to delete {path}: {e}") from e
                logger.info(f"Pruned {path}")
            result.deleted.append(path)

        if not result.deleted:
            logger.debug(f"Nothing to prune for {asset.logical_path}")

        return result
