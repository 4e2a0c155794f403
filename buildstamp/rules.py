#!/usr/bin/env python3
"""
Cache Invalidation Rules and Policies

The fingerprint store only classifies failures. This module turns those
classifications into decisions for a build driver: skip the action, run it,
or abort because its declared inputs are wrong.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional, Union

from buildstamp.build_info import BuildMode, TargetPlatform
from buildstamp.core import Fingerprint, new_fingerprint
from buildstamp.exceptions import (
    CorruptFingerprintError,
    InvalidSchemaError,
    MissingFieldError,
    MissingInputsError,
)
from buildstamp.stamp_file import StampFile


logger = logging.getLogger(__name__)


class InvalidationTrigger(Enum):
    """Events that can trigger a rebuild."""

    NO_STAMP = "no_stamp"  # Action has never completed successfully
    TOOL_CHANGED = "tool_changed"  # Stamp written by another tool revision
    STAMP_UNUSABLE = "stamp_unusable"  # Stamp incomplete or corrupt
    CONFIG_CHANGED = "config_changed"  # Build mode or target platform changed
    DEPENDENCY_CHANGED = "dependency_changed"  # Input set or contents changed
    MISSING_INPUTS = "missing_inputs"  # Declared inputs do not exist


class CacheAction(Enum):
    """Actions a driver can take for a build step."""

    SKIP = "skip"  # Previous output is still valid
    RUN = "run"  # Rebuild, then persist the fresh fingerprint
    ABORT = "abort"  # Declared inputs are wrong; building cannot succeed


@dataclass
class CacheDecision:
    """
    Result of evaluating cache invalidation rules.

    Attributes:
        action: Action to take (skip, run, abort)
        reason: Human-readable explanation for the action
        trigger: Optional trigger that caused the rebuild or abort
        fingerprint: Fresh fingerprint to persist once the build succeeds
    """

    action: CacheAction
    reason: str
    trigger: Optional[InvalidationTrigger] = None
    fingerprint: Optional[Fingerprint] = None

    @property
    def should_skip(self) -> bool:
        return self.action == CacheAction.SKIP


def describe_difference(previous: Fingerprint, current: Fingerprint) -> str:
    """Summarize why two fingerprints differ, or '' if they are equal."""
    if previous.build_mode != current.build_mode:
        return f"Build mode changed ({previous.build_mode} -> {current.build_mode})"
    if previous.target_platform != current.target_platform:
        return (
            f"Target platform changed "
            f"({previous.target_platform or '-'} -> {current.target_platform or '-'})"
        )

    old, new = previous.file_hashes, current.file_hashes
    added = new.keys() - old.keys()
    removed = old.keys() - new.keys()
    changed = [p for p in old.keys() & new.keys() if old[p] != new[p]]
    parts: list[str] = []
    if changed:
        parts.append(f"{len(changed)} changed")
    if added:
        parts.append(f"{len(added)} added")
    if removed:
        parts.append(f"{len(removed)} removed")
    if not parts:
        return ""
    return "Inputs differ: " + ", ".join(parts)


class CacheInvalidationRules:
    """
    Centralized cache invalidation rule engine.

    Policy:
    - Missing or untrusted stamp: run (stale)
    - Fingerprints differ: run
    - Fingerprints equal: skip
    - Declared inputs missing: abort
    """

    @staticmethod
    def compare(
        load_previous: Callable[[], Optional[Fingerprint]],
        current: Fingerprint,
    ) -> CacheDecision:
        """
        Decide whether a build step can be skipped.

        Args:
            load_previous: Loads the persisted fingerprint; returns None when
                nothing has been persisted yet
            current: Freshly computed fingerprint

        Returns:
            CacheDecision carrying the current fingerprint
        """
        try:
            previous = load_previous()
        except InvalidSchemaError as e:
            logger.warning(f"Ignoring stamp from another tool revision: {e.found}")
            return CacheDecision(
                action=CacheAction.RUN,
                reason=f"Stamp written by another tool revision ({e.found})",
                trigger=InvalidationTrigger.TOOL_CHANGED,
                fingerprint=current,
            )
        except (MissingFieldError, CorruptFingerprintError) as e:
            logger.warning(f"Ignoring unusable stamp: {e}")
            return CacheDecision(
                action=CacheAction.RUN,
                reason=f"Stamp unusable: {e.message}",
                trigger=InvalidationTrigger.STAMP_UNUSABLE,
                fingerprint=current,
            )

        if previous is None:
            return CacheDecision(
                action=CacheAction.RUN,
                reason="No stamp exists (first run)",
                trigger=InvalidationTrigger.NO_STAMP,
                fingerprint=current,
            )

        if previous == current:
            return CacheDecision(
                action=CacheAction.SKIP,
                reason="Inputs unchanged since last successful build",
                fingerprint=current,
            )

        config_changed = (
            previous.build_mode != current.build_mode
            or previous.target_platform != current.target_platform
        )
        return CacheDecision(
            action=CacheAction.RUN,
            reason=describe_difference(previous, current),
            trigger=(
                InvalidationTrigger.CONFIG_CHANGED
                if config_changed
                else InvalidationTrigger.DEPENDENCY_CHANGED
            ),
            fingerprint=current,
        )

    @staticmethod
    def check(
        stamp: StampFile,
        build_mode: Union[BuildMode, str],
        target_platform: Optional[Union[TargetPlatform, str]],
        input_paths: Iterable[Union[str, os.PathLike]],
        revision: Optional[str] = None,
    ) -> CacheDecision:
        """
        Fingerprint the inputs and compare against the stamp.

        The fingerprint is computed before the build runs; persist
        ``decision.fingerprint`` after the build succeeds so edits made during
        the build are picked up next time.

        Raises:
            OSError: If an input or the stamp cannot be read
        """
        try:
            current = new_fingerprint(
                build_mode, target_platform, input_paths, revision=revision
            )
        except MissingInputsError as e:
            return CacheDecision(
                action=CacheAction.ABORT,
                reason=e.message,
                trigger=InvalidationTrigger.MISSING_INPUTS,
            )

        decision = CacheInvalidationRules.compare(
            lambda: stamp.read(revision=revision), current
        )
        logger.info(f"{stamp.path}: {decision.action.value} ({decision.reason})")
        return decision
