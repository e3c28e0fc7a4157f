"""Tests for local/remote equivalence strategies."""

import os
import shutil
import tempfile
from pathlib import Path

from django.test import SimpleTestCase, override_settings

from builtdata.equivalence import DigestChecker, SizeMtimeChecker, get_checker
from builtdata.exceptions import ConfigurationError


class EquivalenceTestCase(SimpleTestCase):
    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.local = self.temp_dir / "local" / "Foo_BuiltData.uasset"
        self.remote = self.temp_dir / "remote" / "Foo_BuiltData_abc.uasset"

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write(self, path: Path, data: bytes, mtime: float = 1_000_000) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        os.utime(path, (mtime, mtime))


class SizeMtimeCheckerTests(EquivalenceTestCase):
    def setUp(self):
        super().setUp()
        self.checker = SizeMtimeChecker(mtime_tolerance=1.0)

    def test_missing_local(self):
        self._write(self.remote, b"data")
        self.assertFalse(self.checker.is_equivalent(self.local, self.remote))

    def test_missing_remote(self):
        self._write(self.local, b"data")
        self.assertFalse(self.checker.is_equivalent(self.local, self.remote))

    def test_both_missing(self):
        self.assertFalse(self.checker.is_equivalent(self.local, self.remote))

    def test_same_size_and_mtime(self):
        self._write(self.local, b"data")
        self._write(self.remote, b"data")
        self.assertTrue(self.checker.is_equivalent(self.local, self.remote))

    def test_different_size(self):
        self._write(self.local, b"data")
        self._write(self.remote, b"more data")
        self.assertFalse(self.checker.is_equivalent(self.local, self.remote))

    def test_different_mtime(self):
        self._write(self.local, b"data", mtime=1_000_000)
        self._write(self.remote, b"data", mtime=1_000_100)
        self.assertFalse(self.checker.is_equivalent(self.local, self.remote))

    def test_mtime_within_tolerance(self):
        self._write(self.local, b"data", mtime=1_000_000)
        self._write(self.remote, b"data", mtime=1_000_000.5)
        self.assertTrue(self.checker.is_equivalent(self.local, self.remote))

    def test_same_size_and_mtime_different_bytes_is_equivalent(self):
        """Known limitation: content is not compared, only size and mtime."""
        self._write(self.local, b"AAAA")
        self._write(self.remote, b"BBBB")
        self.assertTrue(self.checker.is_equivalent(self.local, self.remote))

    @override_settings(BUILTDATA_MTIME_TOLERANCE=0)
    def test_tolerance_from_settings(self):
        checker = SizeMtimeChecker()
        self.assertEqual(checker.mtime_tolerance, 0.0)
        self._write(self.local, b"data", mtime=1_000_000)
        self._write(self.remote, b"data", mtime=1_000_000.5)
        self.assertFalse(checker.is_equivalent(self.local, self.remote))


class DigestCheckerTests(EquivalenceTestCase):
    def setUp(self):
        super().setUp()
        self.checker = DigestChecker()

    def test_detects_same_size_same_mtime_change(self):
        self._write(self.local, b"AAAA")
        self._write(self.remote, b"BBBB")
        self.assertFalse(self.checker.is_equivalent(self.local, self.remote))

    def test_same_content_different_mtime(self):
        self._write(self.local, b"data", mtime=1_000_000)
        self._write(self.remote, b"data", mtime=2_000_000)
        self.assertTrue(self.checker.is_equivalent(self.local, self.remote))

    def test_missing_side(self):
        self._write(self.local, b"data")
        self.assertFalse(self.checker.is_equivalent(self.local, self.remote))


class GetCheckerTests(SimpleTestCase):
    def test_by_name(self):
        self.assertIsInstance(get_checker("size_mtime"), SizeMtimeChecker)
        self.assertIsInstance(get_checker("sha256"), DigestChecker)

    @override_settings(BUILTDATA_EQUIVALENCE="sha256")
    def test_default_from_settings(self):
        self.assertIsInstance(get_checker(), DigestChecker)

    def test_unknown_strategy(self):
        with self.assertRaises(ConfigurationError) as ctx:
            get_checker("md5")
        self.assertIn("Unknown equivalence strategy", str(ctx.exception))
