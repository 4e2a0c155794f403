#!/usr/bin/env python3
r"""
Dependency file (depfile) reader

Compiler-generated depfiles are a single line mapping one or more outputs to a
space-separated list of the input files used to produce them. Spaces and
backslashes inside a path are escaped with a backslash, e.g.::

    out.dill : file1.dart fil\\e2.dart fil\ e3.dart

yields ``{"file1.dart", "fil\\e2.dart", "fil e3.dart"}``.
"""

import logging
import os
from pathlib import Path
from typing import Union

from typeguard import typechecked

from buildstamp.exceptions import MalformedManifestError


logger = logging.getLogger(__name__)

DEPFILE_SEPARATOR = ": "


def _tokenize_inputs(deps_str: str) -> list[str]:
    r"""Split the input portion of a depfile into unescaped path tokens.

    Handles:
    - ``\X`` escapes (backslash dropped, ``X`` kept literally, including
      ``\ `` and ``\\``)
    - Unescaped spaces as token delimiters

    Raises:
        MalformedManifestError: If the text ends with a lone backslash
    """
    tokens: list[str] = []
    current: list[str] = []
    i = 0
    while i < len(deps_str):
        ch = deps_str[i]
        if ch == "\\":
            if i + 1 >= len(deps_str):
                raise MalformedManifestError("Dangling escape at end of input list")
            # Escaped character is part of the current path token
            current.append(deps_str[i + 1])
            i += 2
        elif ch == " ":
            tokens.append("".join(current))
            current = []
            i += 1
        else:
            current.append(ch)
            i += 1
    tokens.append("".join(current))
    return tokens


@typechecked
def parse_dependencies(contents: str) -> set[str]:
    """
    Parse depfile text and return the distinct input paths.

    Only the text after the first ``": "`` is considered; outputs are ignored.

    Raises:
        MalformedManifestError: If no separator is present or an escape is
            left dangling
    """
    separator_idx = contents.find(DEPFILE_SEPARATOR)
    if separator_idx == -1:
        raise MalformedManifestError(
            f"No '{DEPFILE_SEPARATOR}' separator between outputs and inputs"
        )

    deps_str = contents[separator_idx + len(DEPFILE_SEPARATOR) :]
    return {t.strip() for t in _tokenize_inputs(deps_str) if t.strip()}


@typechecked
def read_dependencies(depfile_path: Union[str, os.PathLike]) -> set[str]:
    """
    Read a depfile and return the set of input paths it declares.

    The returned paths are not checked for existence.

    Args:
        depfile_path: Path to the .d dependency file

    Returns:
        Set of input paths, each appearing once

    Raises:
        OSError: If the depfile cannot be read
        MalformedManifestError: If the contents are not UTF-8 or do not
            follow the grammar
    """
    path = Path(depfile_path)
    try:
        contents = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise MalformedManifestError(f"Not valid UTF-8: {e}", path=str(path)) from e
    try:
        dependencies = parse_dependencies(contents)
    except MalformedManifestError as e:
        raise MalformedManifestError(e.message, path=str(path)) from e
    logger.debug(f"Read {len(dependencies)} inputs from {path}")
    return dependencies
