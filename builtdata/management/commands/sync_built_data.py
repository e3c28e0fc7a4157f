"""
Django management command to push or pull built data for a project.
"""

from pathlib import Path

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from builtdata.exceptions import ConfigurationError
from builtdata.orchestrator import ExitCode, RunConfig, SyncOrchestrator
from builtdata.transfer import TransferOutcome


class Command(BaseCommand):
    help = "Push or pull the built data of every LFS-tracked map to the sync root"

    def add_arguments(self, parser):
        parser.add_argument(
            "mode",
            help="'push' to upload local built data, 'pull' to download it",
        )
        parser.add_argument(
            "--root",
            help="Sync root directory (default: BUILTDATA_SYNC_ROOT setting)",
        )
        parser.add_argument(
            "--source-dir",
            help="Project checkout to sync (default: current directory)",
        )
        parser.add_argument(
            "--project-name",
            help="Project directory name under the sync root (default: .uproject name)",
        )
        parser.add_argument(
            "--prune",
            action="store_true",
            help="Delete superseded remote versions after transferring",
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Transfer even when local and remote look identical",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report what would be transferred or pruned without changing anything",
        )
        parser.add_argument(
            "--allow-dirty",
            action="store_true",
            help="Sync even if LFS-tracked files have uncommitted changes",
        )
        parser.add_argument(
            "--equivalence",
            help="How to compare local and remote: size_mtime (default) or sha256",
        )

    def handle(self, *args, **options):
        sync_root = options["root"] or getattr(settings, "BUILTDATA_SYNC_ROOT", None)
        project_dir = Path(options["source_dir"]) if options["source_dir"] else Path.cwd()

        if not project_dir.is_dir():
            raise CommandError(
                f"Source directory does not exist: {project_dir}",
                returncode=ExitCode.USAGE_ERROR,
            )

        try:
            config = RunConfig.create(
                mode=options["mode"],
                sync_root=sync_root,
                project_dir=project_dir,
                project_name=options["project_name"],
                prune=options["prune"],
                force=options["force"],
                dry_run=options["dry_run"],
                allow_dirty=options["allow_dirty"],
                equivalence=options["equivalence"],
            )
        except ConfigurationError as e:
            raise CommandError(str(e), returncode=ExitCode.USAGE_ERROR)

        if config.dry_run:
            self.stdout.write(self.style.WARNING("Running in dry-run mode"))

        self.stdout.write(
            f"{config.mode.label}ing built data for {config.project_name} "
            f"({config.project_dir} <-> {config.sync_root})"
        )

        report = SyncOrchestrator(config).run()

        self._output_transfers(report)
        if config.prune:
            self._output_prunes(report)

        if not report.succeeded:
            self.stdout.write(self.style.ERROR(f"\n✗ Sync failed: {report.error}"))
            raise CommandError(f"Sync failed: {report.error}", returncode=report.exit_code)

        self._output_summary(report)

    def _output_transfers(self, report):
        """Output one line per asset transfer decision."""
        styles = {
            TransferOutcome.PUSHED: self.style.SUCCESS,
            TransferOutcome.PULLED: self.style.SUCCESS,
            TransferOutcome.WOULD_PUSH: self.style.WARNING,
            TransferOutcome.WOULD_PULL: self.style.WARNING,
            TransferOutcome.SKIPPED_MISSING_SOURCE: self.style.WARNING,
        }
        for transfer in report.transfers:
            style = styles.get(transfer.outcome, str)
            self.stdout.write(
                f"  {style(transfer.outcome.label):<24} {transfer.asset.logical_path}"
            )

    def _output_prunes(self, report):
        """Output pruned (or skipped) retention groups."""
        verb = "Would have pruned" if report.config.dry_run else "Pruned"
        for result in report.prunes:
            if result.skipped:
                self.stdout.write(
                    self.style.WARNING(
                        f"  Not pruned ({result.skipped_reason}): {result.asset.logical_path}"
                    )
                )
                continue
            for path in result.deleted:
                self.stdout.write(f"  {verb} {path.name}")

    def _output_summary(self, report):
        transferred = report.count(TransferOutcome.PUSHED) + report.count(TransferOutcome.PULLED)
        would_transfer = report.count(TransferOutcome.WOULD_PUSH) + report.count(
            TransferOutcome.WOULD_PULL
        )
        lines = [
            f"  - Assets: {len(report.transfers)}",
            f"  - Transferred: {transferred}",
            f"  - Up to date: {report.count(TransferOutcome.SKIPPED)}",
            f"  - Missing source: {report.count(TransferOutcome.SKIPPED_MISSING_SOURCE)}",
        ]
        if report.config.dry_run:
            lines.insert(2, f"  - Would transfer: {would_transfer}")
        if report.config.prune:
            lines.append(f"  - Pruned: {report.pruned_count}")

        header = "[DRY RUN] Sync checked" if report.config.dry_run else "✓ Sync completed"
        self.stdout.write(self.style.SUCCESS(f"\n{header}:\n" + "\n".join(lines)))

        if report.warnings:
            self.stdout.write(
                self.style.WARNING(f"\n⚠ {len(report.warnings)} warning(s):")
            )
            for warning in report.warnings[:10]:
                self.stdout.write(f"  - {warning}")
            if len(report.warnings) > 10:
                self.stdout.write(f"  ... and {len(report.warnings) - 10} more")
