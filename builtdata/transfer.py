"""
One-directional transfer of a single built data artifact.

Push copies the local artifact to its versioned remote file; pull copies a
remote version over the local artifact. The local artifact is disposable,
so pulls overwrite it unconditionally.
"""

from __future__ import annotations

import logging
from pathlib import Path

from django.db import models

from builtdata.equivalence import EquivalenceChecker, get_checker
from builtdata.exceptions import TransferError
from builtdata.storage import ArtifactStorage

logger = logging.getLogger(__name__)


class Direction(models.TextChoices):
    PUSH = "push", "Push"
    PULL = "pull", "Pull"


class TransferOutcome(models.TextChoices):
    SKIPPED = "skipped", "Skipped"
    SKIPPED_MISSING_SOURCE = "skipped_missing_source", "Skipped (missing source)"
    PUSHED = "pushed", "Pushed"
    PULLED = "pulled", "Pulled"
    WOULD_PUSH = "would_push", "Would have pushed"
    WOULD_PULL = "would_pull", "Would have pulled"


class TransferEngine:
    """
    Copies one artifact in the requested direction.

    Skips the copy when both sides are equivalent unless forced, and treats
    a missing source as a per-asset warning rather than a failure.
    """

    def __init__(
        self,
        storage: ArtifactStorage | None = None,
        checker: EquivalenceChecker | None = None,
    ):
        self.storage = storage or ArtifactStorage()
        self.checker = checker or get_checker(storage=self.storage)

    def transfer(
        self,
        direction: Direction,
        local_path: Path,
        remote_path: Path,
        force: bool = False,
        dry_run: bool = False,
    ) -> TransferOutcome:
        """
        Transfer an artifact between the working copy and the sync root.

        Args:
            direction: Direction.PUSH (local -> remote) or Direction.PULL
            local_path: Local built data file
            remote_path: Versioned remote built data file
            force: Copy even when both sides are equivalent
            dry_run: Log what would happen without touching the filesystem

        Returns:
            TransferOutcome describing what was (or would have been) done

        Raises:
            TransferError: If the copy fails part way
        """
        direction = Direction(direction)
        local_path = Path(local_path)
        remote_path = Path(remote_path)

        if direction == Direction.PUSH:
            source, target = local_path, remote_path
        else:
            source, target = remote_path, local_path

        if not force and self.checker.is_equivalent(local_path, remote_path):
            logger.info(f"Skipping {local_path}: up to date with {remote_path}")
            return TransferOutcome.SKIPPED

        if not self.storage.exists(source):
            side = "local" if direction == Direction.PUSH else "remote"
            logger.warning(f"Skipping {direction.label.lower()} of {source}: {side} artifact missing")
            return TransferOutcome.SKIPPED_MISSING_SOURCE

        if dry_run:
            if direction == Direction.PUSH:
                logger.info(f"[DRY RUN] Would have pushed {source} -> {target}")
                return TransferOutcome.WOULD_PUSH
            logger.info(f"[DRY RUN] Would have pulled {source} -> {target}")
            return TransferOutcome.WOULD_PULL

        try:
            self.storage.ensure_directory(target.parent)
            self.storage.copy(source, target)
        except OSError as e:
            raise TransferError(f"Failed to {direction.value} {source} -> {target}: {e}") from e

        if direction == Direction.PUSH:
            logger.info(f"Pushed {source} -> {target}")
            return TransferOutcome.PUSHED
        logger.info(f"Pulled {source} -> {target}")
        return TransferOutcome.PULLED
