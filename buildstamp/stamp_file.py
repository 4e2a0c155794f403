#!/usr/bin/env python3
"""
Stamp File

Persists the fingerprint of one build action between runs. Reads and writes
are serialized across processes with a file lock, and writes replace the
stamp atomically so a concurrent reader never observes a partial file.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import fasteners

from buildstamp.core import Fingerprint, deserialize, serialize


logger = logging.getLogger(__name__)


class StampFile:
    """
    Persisted fingerprint for a single build action.

    The driver chooses the location, typically one stamp per output artifact
    (e.g. ``.cache/stamps/app.dill.stamp``).
    """

    def __init__(self, path: Union[str, os.PathLike]):
        """
        Initialize stamp file.

        Args:
            path: Location of the stamp; a sibling ``.lock`` file is used for
                inter-process locking
        """
        self.path = Path(path)
        self.lock_file = str(self.path.with_name(self.path.name + ".lock"))

    def _lock(self) -> fasteners.InterProcessLock:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        return fasteners.InterProcessLock(self.lock_file)

    def exists(self) -> bool:
        return self.path.exists()

    def read(self, revision: Optional[str] = None) -> Optional[Fingerprint]:
        """
        Load the persisted fingerprint.

        Uses try-except instead of exists() check to avoid TOCTOU race condition.

        Returns:
            The fingerprint, or None if no stamp has been written yet

        Raises:
            FingerprintError: If the stamp exists but cannot be trusted
            OSError: If the stamp exists but cannot be read
        """
        with self._lock():
            try:
                data = self.path.read_bytes()
            except FileNotFoundError:
                logger.debug(f"No stamp at {self.path}")
                return None
        return deserialize(data, revision=revision)

    def write(self, fingerprint: Fingerprint, revision: Optional[str] = None) -> None:
        """
        Persist a fingerprint, replacing any previous stamp.

        Raises:
            OSError: If the stamp cannot be written
        """
        text = serialize(fingerprint, revision=revision)
        with self._lock():
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=self.path.name, suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        logger.debug(
            f"Wrote stamp {self.path} ({len(fingerprint.file_hashes)} files)"
        )

    def invalidate(self) -> None:
        """
        Invalidate the stamp by removing it.

        This forces the next check to require a rebuild.
        """
        with self._lock():
            self.path.unlink(missing_ok=True)
        logger.debug(f"Invalidated stamp {self.path}")
