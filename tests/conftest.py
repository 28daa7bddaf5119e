"""Pytest configuration and fixtures."""

import asyncio
import os
from unittest.mock import AsyncMock

import pytest

from cargo_scorecard.cli_config import reset_config
from cargo_scorecard.dependency import DependencyRef
from cargo_scorecard.error_handling import HttpStatusError


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep user config files and CARGO_SCORECARD_* variables out of tests."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    for key in list(os.environ):
        if key.startswith("CARGO_SCORECARD_"):
            monkeypatch.delenv(key)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def sample_dependencies():
    return [
        DependencyRef(name="serde", version="1.0.0"),
        DependencyRef(name="left-pad-clone", version="0.1.0"),
    ]


@pytest.fixture
def sample_tree_output():
    """Output of ``cargo tree --prefix none`` for a small project."""
    return """\
demo v0.1.0 (/home/dev/demo)
serde v1.0.0
serde_derive v1.0.0 (proc-macro)
proc-macro2 v1.0.86
quote v1.0.36
proc-macro2 v1.0.86
serde v1.0.0 (*)

anyhow v1.0.86
"""


@pytest.fixture
def stub_services():
    """
    Deterministic resolver and scorer doubles.

    ``repositories`` maps crate name to URL (or None); names missing from the
    mapping fail with HTTP 404. ``scores`` maps repository URL to score (or
    None); URLs missing from the mapping fail with HTTP 500. ``delays`` lets a
    test make some lookups finish later than others.
    """

    class Stubs:
        def __init__(self):
            self.repositories = {}
            self.scores = {}
            self.delays = {}

            async def resolve(name):
                await asyncio.sleep(self.delays.get(name, 0))
                if name not in self.repositories:
                    raise HttpStatusError(name, 404)
                return self.repositories[name]

            async def score(url):
                if url not in self.scores:
                    raise HttpStatusError(url, 500)
                return self.scores[url]

            self.resolver = AsyncMock()
            self.resolver.resolve = AsyncMock(side_effect=resolve)
            self.scorer = AsyncMock()
            self.scorer.score = AsyncMock(side_effect=score)

    return Stubs()
