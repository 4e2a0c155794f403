#!/usr/bin/env python3
"""
Command-line driver for build stamps.

Usage:
    python -m buildstamp deps out.d
    python -m buildstamp check --stamp app.stamp --mode release --depfile out.d
    python -m buildstamp update --stamp app.stamp --mode release --depfile out.d
    python -m buildstamp invalidate --stamp app.stamp

``check`` exits 0 when the build can be skipped, 1 when it must run and 2
when it must abort.
"""

import argparse
import logging
import sys
from dataclasses import dataclass, field
from typing import Optional

from typeguard import typechecked

from buildstamp.core import new_fingerprint
from buildstamp.depfile import read_dependencies
from buildstamp.exceptions import BuildStampError, MissingInputsError
from buildstamp.rules import CacheAction, CacheInvalidationRules
from buildstamp.stamp_file import StampFile


EXIT_SKIP = 0
EXIT_RUN = 1
EXIT_ABORT = 2


@typechecked
@dataclass
class StampArgs:
    """Type-safe command line arguments"""

    command: str
    stamp: Optional[str] = None
    mode: Optional[str] = None
    platform: Optional[str] = None
    depfile: Optional[str] = None
    inputs: list[str] = field(default_factory=list)
    verbose: bool = False


def parse_args(args: Optional[list[str]] = None) -> StampArgs:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        prog="buildstamp", description="Content-addressed build step stamps"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    deps_parser = subparsers.add_parser("deps", help="Print the inputs of a depfile")
    deps_parser.add_argument("depfile", help="Path to the .d dependency file")

    for name, help_text in (
        ("check", "Exit 0 if the build step can be skipped, 1 if it must run"),
        ("update", "Fingerprint the inputs and write the stamp"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--stamp", required=True, help="Stamp file for the action")
        sub.add_argument("--mode", required=True, help="Build mode (e.g. release)")
        sub.add_argument(
            "--platform", default=None, help="Target platform (default: unspecified)"
        )
        sub.add_argument("--depfile", default=None, help="Read inputs from a depfile")
        sub.add_argument("inputs", nargs="*", help="Input files")

    invalidate_parser = subparsers.add_parser(
        "invalidate", help="Remove the stamp so the next check requires a build"
    )
    invalidate_parser.add_argument("--stamp", required=True)

    parsed = parser.parse_args(args)
    if parsed.command in ("check", "update") and not (
        parsed.depfile or parsed.inputs
    ):
        parser.error(f"{parsed.command}: provide --depfile or input files")

    return StampArgs(
        command=parsed.command,
        stamp=getattr(parsed, "stamp", None),
        mode=getattr(parsed, "mode", None),
        platform=getattr(parsed, "platform", None),
        depfile=getattr(parsed, "depfile", None),
        inputs=list(getattr(parsed, "inputs", None) or []),
        verbose=parsed.verbose,
    )


def _collect_inputs(args: StampArgs) -> set[str]:
    inputs = set(args.inputs)
    if args.depfile:
        inputs |= read_dependencies(args.depfile)
    return inputs


def _run(args: StampArgs) -> int:
    if args.command == "deps":
        assert args.depfile is not None
        for path in sorted(read_dependencies(args.depfile)):
            print(path)
        return 0

    assert args.stamp is not None
    stamp = StampFile(args.stamp)

    if args.command == "invalidate":
        stamp.invalidate()
        return 0

    assert args.mode is not None
    inputs = _collect_inputs(args)

    if args.command == "update":
        try:
            fingerprint = new_fingerprint(args.mode, args.platform, inputs)
        except MissingInputsError as e:
            print(e.message, file=sys.stderr)
            return EXIT_ABORT
        stamp.write(fingerprint)
        return 0

    decision = CacheInvalidationRules.check(stamp, args.mode, args.platform, inputs)
    print(f"{decision.action.value}: {decision.reason}")
    if decision.action == CacheAction.SKIP:
        return EXIT_SKIP
    if decision.action == CacheAction.ABORT:
        return EXIT_ABORT
    return EXIT_RUN


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return _run(args)
    except (BuildStampError, OSError) as e:
        print(f"buildstamp: {e}", file=sys.stderr)
        return EXIT_ABORT


if __name__ == "__main__":
    sys.exit(main())
