"""Pytest configuration for the pagepolish test suite."""

from __future__ import annotations

import pytest

from tests.unit.helpers.fake_service import SAMPLE_HTML, SAMPLE_URL


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "server: tests that drive the MCP server through fastmcp.Client",
    )
    config.addinivalue_line(
        "markers",
        "storage: tests that touch the file-backed key-value store",
    )


@pytest.fixture
def sample_html() -> str:
    return SAMPLE_HTML


@pytest.fixture
def sample_url() -> str:
    return SAMPLE_URL
