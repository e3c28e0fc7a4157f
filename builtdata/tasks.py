"""
Celery tasks for built data sync.

Lets build agents schedule pushes and pulls instead of running the
management command by hand.
"""

import logging

from celery import shared_task
from django.conf import settings

logger = logging.getLogger(__name__)


class RetryableSyncError(Exception):
    """A run failed on an I/O error that may clear up on retry."""

    pass


@shared_task(
    bind=True,
    autoretry_for=(RetryableSyncError,),
    retry_backoff=True,
    retry_backoff_max=600,
    max_retries=3,
)
def sync_project_task(
    self,
    mode: str,
    project_dir: str,
    sync_root: str | None = None,
    prune: bool = False,
    force: bool = False,
):
    """
    Push or pull the built data of one project.

    Transfers are idempotent, so a run that failed on an I/O error is
    retried from the start.

    Args:
        mode: "push" or "pull"
        project_dir: Project checkout on the worker
        sync_root: Sync root (default: BUILTDATA_SYNC_ROOT setting)
        prune: Prune superseded remote versions after transferring
        force: Transfer even when local and remote look identical
    """
    from builtdata.exceptions import ConfigurationError, RetentionError, TransferError
    from builtdata.orchestrator import ExitCode, RunConfig, SyncOrchestrator
    from builtdata.transfer import TransferOutcome

    sync_root = sync_root or getattr(settings, "BUILTDATA_SYNC_ROOT", None)

    try:
        config = RunConfig.create(
            mode=mode,
            sync_root=sync_root,
            project_dir=project_dir,
            prune=prune,
            force=force,
        )
    except ConfigurationError as e:
        logger.warning(f"Not syncing {project_dir}: {e}")
        return {"status": "skipped", "reason": "invalid_config", "error": str(e)}

    orchestrator = SyncOrchestrator(config)
    report = orchestrator.run()

    if not report.succeeded:
        logger.error(f"Built data {mode} failed for {config.project_name}: {report.error}")
        if report.exit_code == ExitCode.RUNTIME_FAILURE and isinstance(
            orchestrator.last_error, (TransferError, RetentionError, OSError)
        ):
            raise RetryableSyncError(report.error)
        return {
            "status": "failed",
            "project": config.project_name,
            "exit_code": int(report.exit_code),
            "error": report.error,
        }

    return {
        "status": "completed",
        "project": config.project_name,
        "pushed": report.count(TransferOutcome.PUSHED),
        "pulled": report.count(TransferOutcome.PULLED),
        "skipped": report.count(TransferOutcome.SKIPPED),
        "missing": report.count(TransferOutcome.SKIPPED_MISSING_SOURCE),
        "pruned": report.pruned_count,
        "warnings": len(report.warnings),
    }
