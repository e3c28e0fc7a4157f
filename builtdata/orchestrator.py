"""
Sync orchestrator for built data artifacts.

Runs one push or pull over every tracked map asset of a project:

    start -> resolve_root -> verify_preconditions -> transfer_pass
          -> [retention_pass] -> completed

Any fatal error moves the run to failed with an exit code for its class.
Pruning only starts once every transfer has finished, so an asset's
current version is in the sync root before older versions are considered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from django.conf import settings
from django.db import models

from builtdata.equivalence import EquivalenceChecker, get_checker
from builtdata.exceptions import (
    ConfigurationError,
    InvalidRootError,
    PreconditionError,
    SyncError,
    TrackingError,
)
from builtdata.lfs import GitLfsClient
from builtdata.locator import ArtifactLocation, ArtifactLocator, TrackedAsset
from builtdata.retention import PruneResult, RetentionEngine
from builtdata.storage import ArtifactStorage
from builtdata.transfer import Direction, TransferEngine, TransferOutcome

logger = logging.getLogger(__name__)


class RunState(models.TextChoices):
    START = "start", "Start"
    RESOLVE_ROOT = "resolve_root", "Resolve Root"
    VERIFY_PRECONDITIONS = "verify_preconditions", "Verify Preconditions"
    TRANSFER_PASS = "transfer_pass", "Transfer Pass"
    RETENTION_PASS = "retention_pass", "Retention Pass"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class ExitCode(models.IntegerChoices):
    SUCCESS = 0, "Success"
    USAGE_ERROR = 2, "Usage error"
    INVALID_ROOT = 3, "Missing or invalid sync root"
    PRECONDITION_FAILED = 4, "Tracking precondition failed"
    RUNTIME_FAILURE = 5, "Unexpected runtime failure"


def resolve_project_name(project_dir: Path) -> str:
    """
    Name of the project directory under the sync root.

    Uses the stem of the project's .uproject file, falling back to the
    directory name when there is none.
    """
    project_dir = Path(project_dir)
    uprojects = sorted(project_dir.glob("*.uproject"))
    if uprojects:
        return uprojects[0].stem
    return project_dir.resolve().name


@dataclass(frozen=True)
class RunConfig:
    """Immutable parameters of one sync run."""

    mode: Direction
    sync_root: Path | None
    project_dir: Path
    project_name: str
    prune: bool = False
    force: bool = False
    dry_run: bool = False
    allow_dirty: bool = False
    equivalence: str | None = None

    @classmethod
    def create(
        cls,
        mode: str,
        sync_root: str | Path | None,
        project_dir: str | Path,
        project_name: str | None = None,
        **flags,
    ) -> "RunConfig":
        """
        Build a run configuration from raw options.

        Raises:
            ConfigurationError: If the mode is not push or pull
        """
        try:
            direction = Direction(mode)
        except ValueError:
            raise ConfigurationError(
                f"Invalid mode {mode!r}: expected one of {', '.join(Direction.values)}"
            ) from None

        project_dir = Path(project_dir)
        return cls(
            mode=direction,
            sync_root=Path(sync_root) if sync_root else None,
            project_dir=project_dir,
            project_name=project_name or resolve_project_name(project_dir),
            **flags,
        )


@dataclass
class AssetTransfer:
    """Transfer decision for one asset."""

    asset: TrackedAsset
    location: ArtifactLocation
    outcome: TransferOutcome


@dataclass
class SyncReport:
    """Result of a sync run."""

    config: RunConfig
    state: RunState = RunState.START
    exit_code: ExitCode = ExitCode.SUCCESS
    transfers: list[AssetTransfer] = field(default_factory=list)
    prunes: list[PruneResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: str = ""

    @property
    def succeeded(self) -> bool:
        return self.state == RunState.COMPLETED

    def count(self, outcome: TransferOutcome) -> int:
        return sum(1 for t in self.transfers if t.outcome == outcome)

    @property
    def pruned_count(self) -> int:
        return sum(len(p.deleted) for p in self.prunes)


class SyncOrchestrator:
    """
    Drives locate -> equivalence -> transfer for every tracked asset,
    then optionally prunes superseded remote versions.

    The asset source must provide is_tracking_enabled(),
    is_working_copy_clean() and iter_tracked_assets(); GitLfsClient is
    used when none is given.
    """

    def __init__(
        self,
        config: RunConfig,
        source=None,
        storage: ArtifactStorage | None = None,
        checker: EquivalenceChecker | None = None,
    ):
        self.config = config
        self.source = source or GitLfsClient(config.project_dir)
        self.storage = storage or ArtifactStorage()
        self.checker = checker
        self.report = SyncReport(config=config)
        self.last_error: Exception | None = None

    def _enter(self, state: RunState) -> None:
        logger.debug(f"Sync state: {self.report.state} -> {state}")
        self.report.state = state

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.report.warnings.append(message)

    def run(self) -> SyncReport:
        """
        Execute the sync run.

        Never raises for sync failures; the report carries the final
        state and the exit code instead.

        Returns:
            SyncReport for the run
        """
        config = self.config
        logger.info(
            f"Starting {config.mode.value} of built data for {config.project_name} "
            f"(root={config.sync_root}, prune={config.prune}, force={config.force}, "
            f"dry_run={config.dry_run})"
        )

        try:
            self._enter(RunState.RESOLVE_ROOT)
            locator = self._resolve_root()

            self._enter(RunState.VERIFY_PRECONDITIONS)
            self._verify_preconditions()

            self._enter(RunState.TRANSFER_PASS)
            assets = list(self.source.iter_tracked_assets())
            logger.info(f"Found {len(assets)} tracked map asset(s)")
            located = [(asset, locator.locate(asset)) for asset in assets]
            self._transfer_pass(located)

            if config.prune:
                self._enter(RunState.RETENTION_PASS)
                self._retention_pass(located)

            self._enter(RunState.COMPLETED)

        except InvalidRootError as e:
            self._fail(e, ExitCode.INVALID_ROOT)
        except ConfigurationError as e:
            self._fail(e, ExitCode.USAGE_ERROR)
        except PreconditionError as e:
            self._fail(e, ExitCode.PRECONDITION_FAILED)
        except SyncError as e:
            self._fail(e, ExitCode.RUNTIME_FAILURE)
        except Exception as e:
            logger.error(f"Unexpected failure during {self.report.state}: {e}", exc_info=True)
            self._fail(e, ExitCode.RUNTIME_FAILURE)
        else:
            report = self.report
            logger.info(
                f"Sync completed: {report.count(TransferOutcome.PUSHED)} pushed, "
                f"{report.count(TransferOutcome.PULLED)} pulled, "
                f"{report.count(TransferOutcome.SKIPPED)} up to date, "
                f"{report.count(TransferOutcome.SKIPPED_MISSING_SOURCE)} missing, "
                f"{report.pruned_count} pruned"
            )

        return self.report

    def _fail(self, error: Exception, exit_code: ExitCode) -> None:
        logger.error(f"Sync failed during {self.report.state}: {error}")
        self.last_error = error
        self.report.error = str(error)
        self.report.exit_code = exit_code
        self._enter(RunState.FAILED)

    def _resolve_root(self) -> ArtifactLocator:
        sync_root = self.config.sync_root
        if not sync_root:
            raise InvalidRootError("No sync root given (use --root or BUILTDATA_SYNC_ROOT)")
        if not sync_root.is_dir():
            raise InvalidRootError(f"Sync root does not exist: {sync_root}")

        if self.checker is None:
            self.checker = get_checker(self.config.equivalence, storage=self.storage)

        return ArtifactLocator(
            sync_root=sync_root,
            project_name=self.config.project_name,
            project_dir=self.config.project_dir,
        )

    def _verify_preconditions(self) -> None:
        try:
            if not self.source.is_tracking_enabled():
                raise TrackingError("Git LFS tracking is not enabled for this working copy")
            if not self.config.allow_dirty and not self.source.is_working_copy_clean():
                raise PreconditionError(
                    "Working copy has uncommitted changes to LFS-tracked files "
                    "(commit them or pass --allow-dirty)"
                )
        except PreconditionError as e:
            if not self.config.dry_run:
                raise
            self._warn(f"[DRY RUN] Ignoring failed precondition: {e}")

    def _transfer_pass(self, located: list[tuple[TrackedAsset, ArtifactLocation]]) -> None:
        engine = TransferEngine(storage=self.storage, checker=self.checker)
        for asset, location in located:
            outcome = engine.transfer(
                self.config.mode,
                location.local_path,
                location.remote_path,
                force=self.config.force,
                dry_run=self.config.dry_run,
            )
            if outcome == TransferOutcome.SKIPPED_MISSING_SOURCE:
                self.report.warnings.append(f"Missing source artifact for {asset.logical_path}")
            self.report.transfers.append(AssetTransfer(asset=asset, location=location, outcome=outcome))

    def _retention_pass(self, located: list[tuple[TrackedAsset, ArtifactLocation]]) -> None:
        engine = RetentionEngine(storage=self.storage)
        outcomes = {t.location.remote_path: t.outcome for t in self.report.transfers}
        for asset, location in located:
            current = None
            if outcomes.get(location.remote_path) == TransferOutcome.WOULD_PUSH:
                # The push would copy the local file with its mtime
                current = self.storage.stat(location.local_path)
            result = engine.prune(asset, location, dry_run=self.config.dry_run, current=current)
            if result.skipped:
                self.report.warnings.append(
                    f"Did not prune {asset.logical_path}: {result.skipped_reason}"
                )
            self.report.prunes.append(result)
