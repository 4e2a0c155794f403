"""
End-to-end scenario: a build driver uses a depfile and a stamp to decide
whether a build action can be skipped.
"""

import shutil
import tempfile
from pathlib import Path
from unittest import TestCase

from buildstamp.core import deserialize, new_fingerprint, serialize
from buildstamp.depfile import read_dependencies


REVISION = "rev-1"


class TestBuildDriverScenario(TestCase):
    """Persist, rerun unchanged, then mutate one byte."""

    def setUp(self) -> None:
        self.test_dir = Path(tempfile.mkdtemp())
        self.a = self.test_dir / "a.dart"
        self.b = self.test_dir / "b.dart"
        self.a.write_bytes(b"import 'b.dart';\nvoid main() => run();\n")
        self.b.write_bytes(b"void run() {}\n")
        self.depfile = self.test_dir / "out.dill.d"
        self.depfile.write_text(
            f"{self.test_dir / 'out.dill'} : {self.a} {self.b}\n", encoding="utf-8"
        )
        self.stamp = self.test_dir / "out.dill.stamp"

    def tearDown(self) -> None:
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def fresh(self):
        inputs = read_dependencies(self.depfile)
        return new_fingerprint("release", "android", inputs, revision=REVISION)

    def is_up_to_date(self) -> bool:
        previous = deserialize(self.stamp.read_text(encoding="utf-8"), revision=REVISION)
        return previous == self.fresh()

    def test_skip_then_rebuild(self) -> None:
        self.assertEqual(read_dependencies(self.depfile), {str(self.a), str(self.b)})

        # Build succeeded: persist the fingerprint
        self.stamp.write_text(serialize(self.fresh(), revision=REVISION), encoding="utf-8")

        # Rerun with identical contents: build is skippable
        self.assertTrue(self.is_up_to_date())

        # Mutate one byte of b.dart: rebuild required
        content = bytearray(self.b.read_bytes())
        content[0] ^= 0x01
        self.b.write_bytes(bytes(content))
        self.assertFalse(self.is_up_to_date())
