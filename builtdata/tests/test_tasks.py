import os
import shutil
import tempfile
from pathlib import Path
from unittest.mock import patch

from django.test import SimpleTestCase, override_settings

from builtdata.locator import TrackedAsset
from builtdata.tasks import RetryableSyncError, sync_project_task
from builtdata.tests.fakes import FakeAssetSource

FOO = TrackedAsset("Content/Maps/Foo.umap", "abc123")


@patch("builtdata.orchestrator.GitLfsClient")
class SyncProjectTaskTests(SimpleTestCase):
    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.project_dir = self.temp_dir / "Game"
        self.sync_root = self.temp_dir / "sync"
        self.project_dir.mkdir()
        self.sync_root.mkdir()
        self.local = self.project_dir / "Content" / "Maps" / "Foo_BuiltData.uasset"
        self.local.parent.mkdir(parents=True)
        self.local.write_bytes(b"built data")
        os.utime(self.local, (1_000_000, 1_000_000))

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_push(self, mock_client):
        mock_client.return_value = FakeAssetSource([FOO])

        result = sync_project_task.run("push", str(self.project_dir), str(self.sync_root))

        self.assertEqual(result["status"], "completed")
        self.assertEqual(result["project"], "Game")
        self.assertEqual(result["pushed"], 1)
        self.assertTrue(
            (self.sync_root / "Game" / "Content" / "Maps" / "Foo_BuiltData_abc123.uasset").exists()
        )

    def test_root_from_settings(self, mock_client):
        mock_client.return_value = FakeAssetSource([FOO])

        with override_settings(BUILTDATA_SYNC_ROOT=str(self.sync_root)):
            result = sync_project_task.run("push", str(self.project_dir))

        self.assertEqual(result["status"], "completed")

    def test_invalid_mode(self, mock_client):
        result = sync_project_task.run("sideways", str(self.project_dir), str(self.sync_root))

        self.assertEqual(result["status"], "skipped")
        self.assertEqual(result["reason"], "invalid_config")

    def test_precondition_failure_is_not_retried(self, mock_client):
        mock_client.return_value = FakeAssetSource([FOO], clean=False)

        result = sync_project_task.run("push", str(self.project_dir), str(self.sync_root))

        self.assertEqual(result["status"], "failed")
        self.assertEqual(result["exit_code"], 4)

    def test_transfer_failure_is_retryable(self, mock_client):
        mock_client.return_value = FakeAssetSource([FOO])

        with patch("builtdata.storage.shutil.copy2", side_effect=OSError("share offline")):
            with self.assertRaises(RetryableSyncError):
                sync_project_task.run("push", str(self.project_dir), str(self.sync_root))
