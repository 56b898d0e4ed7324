"""Developer tasks powered by Invoke."""

from __future__ import annotations

import pathlib
import subprocess
from typing import Iterable

from invoke import task

ROOT = pathlib.Path(__file__).parent.resolve()
RESULTS_DIR = ROOT / "results"


def _run(command: Iterable[str] | str) -> None:
    if isinstance(command, str):
        cmd = command
    else:
        cmd = " ".join(command)
    subprocess.run(cmd, shell=True, check=True, cwd=ROOT)


def _ensure_results_dir() -> None:
    RESULTS_DIR.mkdir(exist_ok=True)


@task
def tests(_context):
    """Run the whole test suite (quick feedback, no coverage)."""
    _run(["uv", "run", "pytest", "tests/"])


@task
def unit(_context):
    """Run domain and library tests only, skipping the MCP server tests."""
    _run(["uv", "run", "pytest", "tests/unit", "-m", "'not server'"])


@task
def server(_context):
    """Run the MCP tool tests through fastmcp.Client."""
    _run(["uv", "run", "pytest", "tests/server", "-m", "server"])


@task
def coverage(_context):
    """Run tests under coverage and generate reports."""
    _ensure_results_dir()
    _run(["uv", "run", "coverage", "erase"])
    _run(
        [
            "uv",
            "run",
            "coverage",
            "run",
            "--source=src/pagepolish",
            "-m",
            "pytest",
            "tests/",
            "--junitxml=results/pytest.xml",
        ]
    )
    _run(["uv", "run", "coverage", "report"])
    _run(["uv", "run", "coverage", "html", "-d", "results/htmlcov"])
    _run(["uv", "run", "coverage", "xml", "-o", "results/coverage.xml"])


@task
def lint(_context):
    """Run formatting and type checks."""
    _run(["uv", "run", "black", "--check", "src", "tests"])
    _run(["uv", "run", "mypy", "src"])


@task
def serve(_context, transport="stdio", port=8000):
    """Start the Polish MCP server with an in-memory store."""
    _run(
        [
            "uv",
            "run",
            "pagepolish",
            "--in-memory",
            f"--transport {transport}",
            f"--port {port}" if transport != "stdio" else "",
        ]
    )


@task
def build(_context):
    """Build distribution artifacts."""
    _run(["uv", "build"])
