#!/usr/bin/env python3
"""
Core Fingerprint Store

A fingerprint is a collection of checksums for the input files of one build
action, bound to the build mode and target platform it was computed under.
If a freshly computed fingerprint equals the one persisted after the previous
successful build, the build step can be skipped. This assumes build outputs
are strictly a product of the input files.

Persisted fingerprints are JSON records tagged with the revision of the tool
that wrote them:

    {
      "version": "<tool revision>",
      "buildMode": "release",
      "targetPlatform": "android-arm",
      "files": {"/abs/path/a.dart": "<md5 hex>", ...}
    }
"""

import hashlib
import json
import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from typeguard import typechecked

from buildstamp.build_info import (
    BuildMode,
    TargetPlatform,
    build_mode_name,
    target_platform_name,
)
from buildstamp.exceptions import (
    CorruptFingerprintError,
    InvalidSchemaError,
    MissingFieldError,
    MissingInputsError,
)
from buildstamp.version import get_tool_revision


logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Fingerprint:
    """
    Immutable fingerprint of a build action's inputs.

    Attributes:
        build_mode: Build mode the inputs were fingerprinted under (non-empty)
        target_platform: Target platform, '' when unspecified
        file_hashes: Read-only mapping of input path to MD5 hex digest
        schema_version: Revision of the tool that produced the fingerprint.
            Checked when loading, never compared.
    """

    build_mode: str
    target_platform: str
    file_hashes: Mapping[str, str]
    schema_version: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "file_hashes", MappingProxyType(dict(self.file_hashes))
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Fingerprint):
            return NotImplemented
        return fingerprints_equal(self, other)

    def __hash__(self) -> int:
        return hash(
            (
                self.build_mode,
                self.target_platform,
                frozenset(self.file_hashes.items()),
            )
        )


class FingerprintRecord(BaseModel):
    """
    Persisted form of a fingerprint; every field may be absent on load.

    Fields are only populated from their persisted (camelCase) keys.
    """

    model_config = ConfigDict(populate_by_name=False)

    version: Optional[str] = None
    build_mode: Optional[str] = Field(default=None, alias="buildMode")
    target_platform: Optional[str] = Field(default=None, alias="targetPlatform")
    files: Optional[Dict[str, str]] = None


def fingerprints_equal(a: Fingerprint, b: Fingerprint) -> bool:
    """
    Structural equality of two fingerprints.

    Build mode, target platform and the path -> digest mapping must all match.
    Mapping order does not matter and schema_version is ignored.
    """
    return (
        a.build_mode == b.build_mode
        and a.target_platform == b.target_platform
        and len(a.file_hashes) == len(b.file_hashes)
        and all(
            b.file_hashes.get(path) == digest
            for path, digest in a.file_hashes.items()
        )
    )


def _compute_md5(file_path: str) -> str:
    """
    Compute MD5 hash of file content.

    Raises:
        OSError: If file cannot be read
    """
    hasher = hashlib.md5()
    with open(file_path, "rb") as f:
        # Read in chunks to handle large files efficiently
        for chunk in iter(lambda: f.read(65536), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


@typechecked
def new_fingerprint(
    build_mode: Union[BuildMode, str],
    target_platform: Optional[Union[TargetPlatform, str]],
    input_paths: Iterable[Union[str, os.PathLike]],
    revision: Optional[str] = None,
    max_workers: Optional[int] = None,
) -> Fingerprint:
    """
    Fingerprint the current contents of a set of input files.

    Files are hashed concurrently; the result depends only on file contents
    and the two configuration values, never on timestamps or path order.

    Args:
        build_mode: Build mode of the action
        target_platform: Target platform of the action, None if unspecified
        input_paths: Input files; each distinct path becomes one entry
        revision: Tool revision to stamp (defaults to get_tool_revision())
        max_workers: Thread pool size for hashing

    Returns:
        Fingerprint covering exactly the distinct input paths

    Raises:
        TypeError: If input_paths is a single str or bytes path
        ValueError: If build_mode is empty
        MissingInputsError: If any input file does not exist
        OSError: If an existing input file cannot be read
    """
    if isinstance(input_paths, (str, bytes)):
        raise TypeError("input_paths must be a collection of paths, not a single path")
    mode = build_mode_name(build_mode)
    platform = target_platform_name(target_platform)
    paths = sorted({os.fspath(p) for p in input_paths})

    missing = [p for p in paths if not os.path.isfile(p)]
    if missing:
        raise MissingInputsError(missing)

    logger.debug(f"Hashing {len(paths)} input files ({mode}/{platform or '-'})")
    file_hashes: dict[str, str] = {}
    vanished: list[str] = []
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures: dict[str, Future[str]] = {
            path: executor.submit(_compute_md5, path) for path in paths
        }
        for path, future in futures.items():
            try:
                file_hashes[path] = future.result()
            except FileNotFoundError:
                # Deleted between the existence check and the read
                vanished.append(path)
    if vanished:
        raise MissingInputsError(vanished)

    return Fingerprint(
        build_mode=mode,
        target_platform=platform,
        file_hashes=file_hashes,
        schema_version=revision if revision is not None else get_tool_revision(),
    )


def serialize(fingerprint: Fingerprint, revision: Optional[str] = None) -> str:
    """
    Serialize a fingerprint to JSON, tagged with the current tool revision.

    File entries are written in sorted path order so identical fingerprints
    always produce identical text.
    """
    record = FingerprintRecord.model_validate(
        {
            "version": revision if revision is not None else get_tool_revision(),
            "buildMode": fingerprint.build_mode,
            "targetPlatform": fingerprint.target_platform,
            "files": dict(sorted(fingerprint.file_hashes.items())),
        }
    )
    return record.model_dump_json(by_alias=True, indent=2)


def deserialize(text: Union[str, bytes], revision: Optional[str] = None) -> Fingerprint:
    """
    Create a fingerprint from serialized JSON.

    Raises, checked in this order:
        CorruptFingerprintError: Text is not a UTF-8 JSON object
        InvalidSchemaError: Version differs from the current tool revision
        CorruptFingerprintError: A field holds a value of the wrong type
        MissingFieldError: buildMode absent or empty, targetPlatform absent,
            or files absent
    """
    try:
        content = json.loads(text)
    except ValueError as e:
        # Covers JSONDecodeError and UnicodeDecodeError
        raise CorruptFingerprintError(f"Unreadable fingerprint JSON: {e}") from e
    if not isinstance(content, dict):
        raise CorruptFingerprintError(
            f"Fingerprint JSON must be an object, got {type(content).__name__}"
        )

    # Another revision is never trusted, whatever the rest of the record holds
    expected = revision if revision is not None else get_tool_revision()
    version = content.get("version")
    if version != expected:
        raise InvalidSchemaError(None if version is None else str(version), expected)

    try:
        record = FingerprintRecord.model_validate(content)
    except ValidationError as e:
        raise CorruptFingerprintError(f"Malformed fingerprint JSON: {e}") from e

    if not record.build_mode:
        raise MissingFieldError("buildMode")

    # An empty target platform is valid; only an absent one is rejected
    if record.target_platform is None:
        raise MissingFieldError("targetPlatform")

    if record.files is None:
        raise MissingFieldError("files")

    return Fingerprint(
        build_mode=record.build_mode,
        target_platform=record.target_platform,
        file_hashes=record.files,
        schema_version=record.version,
    )
