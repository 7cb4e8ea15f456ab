"""Pytest configuration and fixtures for agent lifecycle tests.

The harness fixtures run against tests/helpers/fake_agent.py, installed
on $PATH as `consul`, so no real agent is needed.
"""

import pytest

from testconsul.ports import InstanceCounter
from testconsul.server import TestHarness
from testconsul.wait import WaitPolicy
from tests.helpers.agent import install_fake_agent, path_with
from tests.helpers.status_server import StatusServer

# Shared across the session so every started fake agent gets fresh ports.
_counter = InstanceCounter(start=10)


@pytest.fixture
def fake_agent(tmp_path, monkeypatch):
    """Put the fake agent on $PATH as `consul`.

    Yields a setter for the agent's behaviour ("ready", "no-leader", "exit").
    """
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    install_fake_agent(bin_dir)
    monkeypatch.setenv("PATH", path_with(bin_dir))
    monkeypatch.delenv("FAKE_AGENT_MODE", raising=False)

    def set_mode(mode: str):
        monkeypatch.setenv("FAKE_AGENT_MODE", mode)

    yield set_mode


@pytest.fixture
def harness(fake_agent):
    """Harness with a short readiness bound, backed by the fake agent."""
    return TestHarness(wait_policy=WaitPolicy(retries=500, delay=0.02), counter=_counter)


@pytest.fixture
def status_server():
    """Mock catalog endpoint reporting a known leader and index 5."""
    server = StatusServer()
    server.run_in_thread()

    yield server

    server.shutdown()
    server.server_close()
