"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from polyinstall.adapters.mock import MockRunner
from polyinstall.core.models import HostFacts, OSKind


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def runner() -> MockRunner:
    """A mock runner where every command succeeds."""
    return MockRunner()


@pytest.fixture
def linux_host() -> HostFacts:
    return HostFacts(os_kind=OSKind.LINUX)


@pytest.fixture
def no_tools():
    """``which`` stand-in that finds nothing."""
    return lambda name: None


@pytest.fixture
def all_tools():
    """``which`` stand-in that finds everything under /usr/bin."""
    return lambda name: f"/usr/bin/{name}"
