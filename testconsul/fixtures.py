"""pytest integration for test agents.

Loaded automatically through the pytest11 entry point. Provides:
- consul_harness: Session-wide TestHarness built from the environment
- consul_server: A running agent, stopped after the test
- consul_server_factory: Starts agents on demand, stops them all afterwards

A missing agent binary skips the test. Any other setup failure, and any
teardown failure, fails it.
"""

import pytest

from testconsul.config import ConfigureFunc
from testconsul.server import AgentNotFoundError, TestHarness, TestServer, TestServerError


def start_or_skip(harness: TestHarness, configure: ConfigureFunc | None = None) -> TestServer:
    try:
        return harness.start(configure)
    except AgentNotFoundError as e:
        pytest.skip(f"{e}, skipping")
    except (TestServerError, ValueError) as e:
        pytest.fail(f"err: {e}")


def stop_or_fail(server: TestServer):
    result = server.stop()
    if not result.ok:
        pytest.fail(f"Failed to stop agent (PID: {result.pid}): {result.error}")


@pytest.fixture(scope="session")
def consul_harness():
    return TestHarness.from_env()


@pytest.fixture
def consul_server(consul_harness):
    """Running agent with the default configuration.

    The agent is killed and its data directory removed after the test.
    """
    server = start_or_skip(consul_harness)

    yield server

    stop_or_fail(server)


@pytest.fixture
def consul_server_factory(consul_harness):
    """Callable that starts an agent, optionally with a configure function."""
    servers: list[TestServer] = []

    def factory(configure: ConfigureFunc | None = None) -> TestServer:
        server = start_or_skip(consul_harness, configure)
        servers.append(server)
        return server

    yield factory

    for server in servers:
        if not server.stopped:
            stop_or_fail(server)
