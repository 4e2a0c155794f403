"""
buildstamp

Content-addressed invalidation for build steps: fingerprint the inputs of a
build action, persist the fingerprint, and skip the action next time if the
inputs are unchanged.
"""

__version__ = "0.1.0"

from buildstamp.build_info import BuildMode, TargetPlatform
from buildstamp.core import (
    Fingerprint,
    deserialize,
    fingerprints_equal,
    new_fingerprint,
    serialize,
)
from buildstamp.depfile import parse_dependencies, read_dependencies
from buildstamp.exceptions import (
    BuildStampError,
    CorruptFingerprintError,
    FingerprintError,
    InvalidSchemaError,
    MalformedManifestError,
    MissingFieldError,
    MissingInputsError,
)
from buildstamp.rules import CacheAction, CacheDecision, CacheInvalidationRules
from buildstamp.stamp_file import StampFile
from buildstamp.version import get_tool_revision


__all__ = [
    "BuildMode",
    "TargetPlatform",
    "Fingerprint",
    "new_fingerprint",
    "serialize",
    "deserialize",
    "fingerprints_equal",
    "read_dependencies",
    "parse_dependencies",
    "StampFile",
    "CacheInvalidationRules",
    "CacheDecision",
    "CacheAction",
    "get_tool_revision",
    "BuildStampError",
    "FingerprintError",
    "MissingInputsError",
    "InvalidSchemaError",
    "MissingFieldError",
    "CorruptFingerprintError",
    "MalformedManifestError",
]
