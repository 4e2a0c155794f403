"""Tests for persisting fingerprints to stamp files."""

import concurrent.futures
import shutil
import tempfile
from pathlib import Path
from unittest import TestCase

from buildstamp.core import Fingerprint
from buildstamp.exceptions import CorruptFingerprintError, InvalidSchemaError
from buildstamp.stamp_file import StampFile


REVISION = "rev-1"


class TestStampFile(TestCase):
    """Test suite for StampFile functionality."""

    def setUp(self) -> None:
        self.test_dir = Path(tempfile.mkdtemp())
        self.stamp_path = self.test_dir / "stamps" / "app.dill.stamp"
        self.fingerprint = Fingerprint(
            "release", "android", {"/src/a.dart": "a" * 32, "/src/b.dart": "b" * 32}
        )

    def tearDown(self) -> None:
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_read_without_stamp(self) -> None:
        stamp = StampFile(self.stamp_path)
        self.assertFalse(stamp.exists())
        self.assertIsNone(stamp.read(revision=REVISION))

    def test_write_then_read(self) -> None:
        stamp = StampFile(self.stamp_path)
        stamp.write(self.fingerprint, revision=REVISION)

        self.assertTrue(stamp.exists())
        restored = stamp.read(revision=REVISION)
        self.assertEqual(restored, self.fingerprint)

    def test_write_creates_parent_directories(self) -> None:
        stamp = StampFile(self.test_dir / "deep" / "nested" / "out.stamp")
        stamp.write(self.fingerprint, revision=REVISION)
        self.assertTrue((self.test_dir / "deep" / "nested" / "out.stamp").exists())

    def test_write_replaces_previous_stamp(self) -> None:
        stamp = StampFile(self.stamp_path)
        stamp.write(self.fingerprint, revision=REVISION)
        updated = Fingerprint("release", "android", {"/src/a.dart": "c" * 32})
        stamp.write(updated, revision=REVISION)
        self.assertEqual(stamp.read(revision=REVISION), updated)

    def test_no_temporary_files_left_behind(self) -> None:
        stamp = StampFile(self.stamp_path)
        stamp.write(self.fingerprint, revision=REVISION)
        leftovers = [p.name for p in self.stamp_path.parent.iterdir()]
        self.assertEqual(
            sorted(leftovers), ["app.dill.stamp", "app.dill.stamp.lock"]
        )

    def test_read_from_other_revision(self) -> None:
        StampFile(self.stamp_path).write(self.fingerprint, revision="rev-0")
        with self.assertRaises(InvalidSchemaError):
            StampFile(self.stamp_path).read(revision=REVISION)

    def test_read_corrupt_stamp(self) -> None:
        self.stamp_path.parent.mkdir(parents=True)
        self.stamp_path.write_text('{"version": "rev-1", "buildMo', encoding="utf-8")
        with self.assertRaises(CorruptFingerprintError):
            StampFile(self.stamp_path).read(revision=REVISION)

    def test_read_stamp_with_invalid_utf8(self) -> None:
        self.stamp_path.parent.mkdir(parents=True)
        self.stamp_path.write_bytes(b'{"version": "rev-1", "buildMode": "\xff"}')
        with self.assertRaises(CorruptFingerprintError):
            StampFile(self.stamp_path).read(revision=REVISION)

    def test_invalidate(self) -> None:
        stamp = StampFile(self.stamp_path)
        stamp.write(self.fingerprint, revision=REVISION)
        stamp.invalidate()
        self.assertFalse(stamp.exists())
        self.assertIsNone(stamp.read(revision=REVISION))

    def test_invalidate_without_stamp(self) -> None:
        StampFile(self.stamp_path).invalidate()
        self.assertFalse(self.stamp_path.exists())

    def test_concurrent_writers(self) -> None:
        """Readers never observe a partially written stamp."""
        fingerprints = [
            Fingerprint("release", "android", {f"/src/{i}.dart": f"{i:032x}"})
            for i in range(20)
        ]

        def write(fp: Fingerprint) -> None:
            StampFile(self.stamp_path).write(fp, revision=REVISION)

        with concurrent.futures.ThreadPoolExecutor(max_workers=4) as executor:
            list(executor.map(write, fingerprints))

        self.assertIn(StampFile(self.stamp_path).read(revision=REVISION), fingerprints)
