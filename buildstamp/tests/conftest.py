"""Pytest hooks for buildstamp tests: opt-in for large input-set runs."""

import pytest
from _pytest.config import Config
from _pytest.config.argparsing import Parser
from _pytest.nodes import Item


SLOW_MARKER = "slow"


def pytest_addoption(parser: Parser) -> None:
    parser.addoption(
        "--runslow",
        action="store_true",
        default=False,
        help="also hash the large generated input sets",
    )


def pytest_configure(config: Config) -> None:
    config.addinivalue_line(
        "markers", f"{SLOW_MARKER}: fingerprints hundreds of generated files"
    )


def pytest_collection_modifyitems(config: Config, items: list[Item]) -> None:
    """Deselect large input-set tests unless --runslow is given."""
    if config.getoption("--runslow"):
        return

    skip_slow = pytest.mark.skip(reason="large input set; pass --runslow")
    for item in items:
        if SLOW_MARKER in item.keywords:
            item.add_marker(skip_slow)
