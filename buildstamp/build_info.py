#!/usr/bin/env python3
"""
Build configuration identifiers

Different build modes and target platforms produce different outputs from the
same inputs, so both are recorded in every fingerprint. Callers may pass the
enums below or any plain string; fingerprints only ever store the string form.
"""

from enum import Enum
from typing import Optional, Union


class BuildMode(Enum):
    """
    Build modes that affect cache separation.

    A fingerprint produced in one mode never matches one produced in another.
    """

    DEBUG = "debug"  # Unoptimized, assertions and debugging services enabled
    PROFILE = "profile"  # Optimized, with profiling hooks
    RELEASE = "release"  # Fully optimized production build


class TargetPlatform(Enum):
    """Platforms a build action can target."""

    ANDROID_ARM = "android-arm"
    ANDROID_ARM64 = "android-arm64"
    ANDROID_X64 = "android-x64"
    ANDROID_X86 = "android-x86"
    IOS = "ios"
    DARWIN_X64 = "darwin-x64"
    LINUX_X64 = "linux-x64"
    WINDOWS_X64 = "windows-x64"
    FUCHSIA = "fuchsia"
    TESTER = "flutter-tester"


def build_mode_name(build_mode: Union[BuildMode, str]) -> str:
    """
    Normalize a build mode to the string stored in fingerprints.

    Raises:
        ValueError: If the build mode is empty
    """
    name = build_mode.value if isinstance(build_mode, BuildMode) else build_mode
    if not name:
        raise ValueError("Build mode must be a non-empty string")
    return name


def target_platform_name(
    target_platform: Optional[Union[TargetPlatform, str]],
) -> str:
    """Normalize a target platform; None means unspecified and maps to ''."""
    if target_platform is None:
        return ""
    if isinstance(target_platform, TargetPlatform):
        return target_platform.value
    return target_platform
