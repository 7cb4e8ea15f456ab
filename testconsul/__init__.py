"""Start throwaway Consul agents for tests."""

from testconsul.config import AddressConfig, ServerConfig, build_config, default_server_config
from testconsul.ports import InstanceCounter, PortConfig, default_ports, next_index
from testconsul.server import (
    AgentNotFoundError,
    LeaderTimeoutError,
    ServerStartError,
    ServerStoppedError,
    StopResult,
    TestHarness,
    TestServer,
    TestServerError,
    check_leader,
    new_test_server,
)
from testconsul.wait import WaitPolicy, wait_for_result

__all__ = [
    "AddressConfig",
    "AgentNotFoundError",
    "InstanceCounter",
    "LeaderTimeoutError",
    "PortConfig",
    "ServerConfig",
    "ServerStartError",
    "ServerStoppedError",
    "StopResult",
    "TestHarness",
    "TestServer",
    "TestServerError",
    "WaitPolicy",
    "build_config",
    "check_leader",
    "default_ports",
    "default_server_config",
    "new_test_server",
    "next_index",
    "wait_for_result",
]
