"""
Django management command to show the built data state of every tracked map.
"""

import json
from pathlib import Path

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from builtdata.equivalence import get_checker
from builtdata.exceptions import ConfigurationError, SyncError
from builtdata.lfs import GitLfsClient
from builtdata.locator import ArtifactLocator
from builtdata.orchestrator import ExitCode, resolve_project_name
from builtdata.storage import ArtifactStorage


class Command(BaseCommand):
    help = "List tracked maps with local, remote and stored-version state of their built data"

    def add_arguments(self, parser):
        parser.add_argument(
            "--root",
            help="Sync root directory (default: BUILTDATA_SYNC_ROOT setting)",
        )
        parser.add_argument(
            "--source-dir",
            help="Project checkout (default: current directory)",
        )
        parser.add_argument(
            "--project-name",
            help="Project directory name under the sync root (default: .uproject name)",
        )
        parser.add_argument(
            "--equivalence",
            help="How to compare local and remote: size_mtime (default) or sha256",
        )
        parser.add_argument(
            "--json",
            action="store_true",
            help="Output as JSON",
        )

    def handle(self, *args, **options):
        sync_root = options["root"] or getattr(settings, "BUILTDATA_SYNC_ROOT", None)
        if not sync_root or not Path(sync_root).is_dir():
            raise CommandError(
                f"Sync root does not exist: {sync_root}", returncode=ExitCode.INVALID_ROOT
            )
        project_dir = Path(options["source_dir"]) if options["source_dir"] else Path.cwd()
        project_name = options["project_name"] or resolve_project_name(project_dir)

        storage = ArtifactStorage()
        locator = ArtifactLocator(sync_root, project_name, project_dir)
        try:
            checker = get_checker(options["equivalence"], storage=storage)
            rows = [
                self._asset_status(asset, locator.locate(asset), storage, checker)
                for asset in GitLfsClient(project_dir).iter_tracked_assets()
            ]
        except ConfigurationError as e:
            raise CommandError(str(e), returncode=ExitCode.USAGE_ERROR)
        except SyncError as e:
            raise CommandError(str(e), returncode=ExitCode.PRECONDITION_FAILED)

        if not rows:
            self.stdout.write(self.style.WARNING("No tracked maps found."))
            return

        if options["json"]:
            self.stdout.write(json.dumps(rows, indent=2))
        else:
            self._output_table(rows)

    def _asset_status(self, asset, location, storage, checker) -> dict:
        try:
            versions = sum(
                1
                for path in storage.list_matching(location.remote_dir, location.retention_pattern)
                if location.content_id_from_name(path.name)
            )
        except OSError:
            versions = 0
        local = storage.exists(location.local_path)
        remote = storage.exists(location.remote_path)
        if local and remote:
            state = "synced" if checker.is_equivalent(location.local_path, location.remote_path) else "differs"
        elif local:
            state = "not_pushed"
        elif remote:
            state = "not_pulled"
        else:
            state = "missing"
        return {
            "path": asset.logical_path,
            "content_id": asset.content_id,
            "local": local,
            "remote": remote,
            "state": state,
            "versions": versions,
        }

    def _output_table(self, rows):
        """Output asset states as formatted table."""
        self.stdout.write("\n" + "=" * 80)
        self.stdout.write(f"{'Map':<44} {'Id':<12} {'State':<12} {'Versions':<8}")
        self.stdout.write("=" * 80)

        for row in rows:
            if row["state"] == "synced":
                state_display = self.style.SUCCESS(row["state"])
            elif row["state"] == "missing":
                state_display = self.style.ERROR(row["state"])
            else:
                state_display = self.style.WARNING(row["state"])

            self.stdout.write(
                f"{row['path']:<44} {row['content_id'][:12]:<12} {state_display:<12} {row['versions']:<8}"
            )

        self.stdout.write("=" * 80)
        self.stdout.write(f"Total: {len(rows)} map(s)\n")
