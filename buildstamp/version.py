#!/usr/bin/env python3
"""
Tool revision reporting

Every persisted fingerprint embeds the revision of the tool that wrote it.
A fingerprint from another revision is never trusted, since hashing or
configuration semantics may have changed in between.
"""

import logging
import subprocess
from functools import lru_cache
from importlib import metadata
from pathlib import Path

from buildstamp import __version__


logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _git_revision(root: Path) -> str | None:
    """Return the HEAD commit of the checkout at root, or None."""
    if not (root / ".git").exists():
        return None
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            cwd=root,
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug(f"git rev-parse failed in {root}: {e}")
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def _package_version() -> str:
    try:
        return metadata.version("buildstamp")
    except metadata.PackageNotFoundError:
        return __version__


@lru_cache(maxsize=1)
def get_tool_revision() -> str:
    """
    Get the revision identifier stamped into fingerprints.

    Running from a source checkout, this is the checkout's git HEAD so that
    every commit invalidates previously written fingerprints. Installed
    packages use their distribution version instead.

    Returns:
        Stable revision string for the lifetime of the process
    """
    revision = _git_revision(_PROJECT_ROOT)
    if revision is None:
        revision = f"buildstamp-{_package_version()}"
    logger.debug(f"Tool revision: {revision}")
    return revision
