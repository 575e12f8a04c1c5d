"""
tests/conftest.py – pytest plugin: --integration flag + skip logic.

Live-network tests are marked ``@pytest.mark.integration`` and only run
when pytest is invoked with ``--integration``.
"""

from __future__ import annotations

import pytest


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="Run integration tests against the live exchange",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "integration: mark test as a live-network integration test (use --integration to run)",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    if config.getoption("--integration"):
        return
    skip_integration = pytest.mark.skip(reason="pass --integration to run against the live exchange")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)
