#!/usr/bin/env python3
"""Exceptions raised by the fingerprint store and the depfile reader."""

from typing import List, Optional


class BuildStampError(Exception):
    """Base exception for buildstamp failures"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MalformedManifestError(BuildStampError):
    """Depfile contents do not follow the ``outputs : inputs`` grammar"""

    def __init__(self, message: str, path: Optional[str] = None):
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message)
        self.path = path


class FingerprintError(BuildStampError):
    """Base exception for fingerprint construction and loading failures"""

    pass


class MissingInputsError(FingerprintError):
    """One or more declared input files do not exist"""

    def __init__(self, missing: List[str]):
        self.missing = sorted(missing)
        super().__init__("Missing input files:\n" + "\n".join(self.missing))


class InvalidSchemaError(FingerprintError):
    """Persisted fingerprint was written by a different tool revision"""

    def __init__(self, found: Optional[str], expected: str):
        super().__init__(f"Incompatible fingerprint version: {found}")
        self.found = found
        self.expected = expected


class MissingFieldError(FingerprintError):
    """Persisted fingerprint lacks a required field"""

    def __init__(self, field: str):
        super().__init__(f"Field '{field}' unspecified in fingerprint JSON")
        self.field = field


class CorruptFingerprintError(FingerprintError):
    """Persisted fingerprint is not a well-formed JSON record"""

    pass
