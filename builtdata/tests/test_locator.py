from pathlib import Path

from django.test import SimpleTestCase, override_settings

from builtdata.exceptions import ConfigurationError
from builtdata.locator import ArtifactLocator, TrackedAsset, locate


class LocateTests(SimpleTestCase):
    def test_map_asset_paths(self):
        location = locate("Content/Maps/Foo.umap", "abc123", "/sync", "Game")

        self.assertEqual(
            location.remote_path,
            Path("/sync/Game/Content/Maps/Foo_BuiltData_abc123.uasset"),
        )
        self.assertEqual(location.local_path, Path("Content/Maps/Foo_BuiltData.uasset"))

    def test_local_path_under_project_dir(self):
        location = locate(
            "Content/Maps/Foo.umap", "abc123", "/sync", "Game", project_dir="/work/Game"
        )
        self.assertEqual(
            location.local_path, Path("/work/Game/Content/Maps/Foo_BuiltData.uasset")
        )

    def test_root_level_asset(self):
        location = locate("Foo.umap", "abc123", "/sync", "Game")
        self.assertEqual(location.remote_path, Path("/sync/Game/Foo_BuiltData_abc123.uasset"))
        self.assertEqual(location.local_path, Path("Foo_BuiltData.uasset"))

    def test_backslash_paths_are_normalized(self):
        location = locate("Content\\Maps\\Foo.umap", "abc123", "/sync", "Game")
        self.assertEqual(
            location.remote_path,
            Path("/sync/Game/Content/Maps/Foo_BuiltData_abc123.uasset"),
        )

    def test_custom_extension(self):
        location = locate("Maps/Foo.umap", "abc", "/sync", "Game", extension=".ubulk")
        self.assertEqual(location.remote_path.name, "Foo_BuiltData_abc.ubulk")

    def test_deterministic(self):
        first = locate("Content/Maps/Foo.umap", "abc123", "/sync", "Game")
        second = locate("Content/Maps/Foo.umap", "abc123", "/sync", "Game")
        self.assertEqual(first, second)

    def test_distinct_inputs_never_collide(self):
        """Same content id under different paths, and different ids, all map apart."""
        pairs = [
            ("Content/Maps/Foo.umap", "abc123"),
            ("Content/Maps/Foo.umap", "def456"),
            ("Content/Other/Foo.umap", "abc123"),
            ("Content/Maps/Bar.umap", "abc123"),
            ("Foo.umap", "abc123"),
        ]
        remote_paths = {locate(path, cid, "/sync", "Game").remote_path for path, cid in pairs}
        self.assertEqual(len(remote_paths), len(pairs))

    def test_rejects_absolute_path(self):
        with self.assertRaises(ConfigurationError):
            locate("/Content/Maps/Foo.umap", "abc123", "/sync", "Game")

    def test_rejects_drive_path(self):
        with self.assertRaises(ConfigurationError):
            locate("C:/Content/Foo.umap", "abc123", "/sync", "Game")

    def test_rejects_parent_segments(self):
        with self.assertRaises(ConfigurationError) as ctx:
            locate("Content/../../Foo.umap", "abc123", "/sync", "Game")
        self.assertIn("escapes", str(ctx.exception))

    def test_rejects_empty_path(self):
        with self.assertRaises(ConfigurationError):
            locate("", "abc123", "/sync", "Game")

    def test_rejects_bad_content_ids(self):
        for content_id in ["", "  ", "ab/cd", "ab\\cd", "..", "ab:cd", "v2_BuiltData_abc", "BuiltData_abc"]:
            with self.subTest(content_id=content_id):
                with self.assertRaises(ConfigurationError):
                    locate("Content/Maps/Foo.umap", content_id, "/sync", "Game")

    def test_rejects_bad_project_name(self):
        with self.assertRaises(ConfigurationError):
            locate("Content/Maps/Foo.umap", "abc123", "/sync", "")
        with self.assertRaises(ConfigurationError):
            locate("Content/Maps/Foo.umap", "abc123", "/sync", "a/b")


class ArtifactLocationTests(SimpleTestCase):
    def setUp(self):
        self.location = locate("Content/Maps/Foo.umap", "abc123", "/sync", "Game")

    def test_retention_pattern(self):
        self.assertEqual(self.location.retention_pattern, "Foo_BuiltData_*.uasset")
        self.assertEqual(self.location.remote_dir, Path("/sync/Game/Content/Maps"))

    def test_content_id_from_name(self):
        self.assertEqual(
            self.location.content_id_from_name("Foo_BuiltData_old999.uasset"), "old999"
        )
        self.assertEqual(
            self.location.content_id_from_name("Foo_BuiltData_abc123.uasset"), "abc123"
        )

    def test_content_id_from_foreign_name(self):
        self.assertIsNone(self.location.content_id_from_name("Bar_BuiltData_abc.uasset"))
        self.assertIsNone(self.location.content_id_from_name("Foo_BuiltData_abc.ubulk"))
        self.assertIsNone(self.location.content_id_from_name("Foo_BuiltData_.uasset"))
        self.assertIsNone(self.location.content_id_from_name("Foo_BuiltData.uasset"))

    def test_content_id_from_sibling_artifact_name(self):
        self.assertIsNone(
            self.location.content_id_from_name("Foo_BuiltData_v2_BuiltData_abc.uasset")
        )
        self.assertIsNone(self.location.content_id_from_name("Foo_BuiltData_BuiltData_abc.uasset"))


class ArtifactLocatorTests(SimpleTestCase):
    @override_settings(BUILTDATA_ARTIFACT_EXTENSION="ubulk")
    def test_extension_from_settings(self):
        locator = ArtifactLocator("/sync", "Game", "/work")
        location = locator.locate(TrackedAsset("Content/Maps/Foo.umap", "abc"))
        self.assertEqual(location.remote_path, Path("/sync/Game/Content/Maps/Foo_BuiltData_abc.ubulk"))
        self.assertEqual(location.local_path, Path("/work/Content/Maps/Foo_BuiltData.ubulk"))

    def test_locate_asset(self):
        locator = ArtifactLocator("/sync", "Game", "/work", extension="uasset")
        location = locator.locate(TrackedAsset("Content/Maps/Foo.umap", "abc123"))
        self.assertEqual(location.content_id, "abc123")
        self.assertEqual(location.base_name, "Foo")
