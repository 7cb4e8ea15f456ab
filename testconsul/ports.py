"""Port allocation for test agents.

Every test agent gets an instance index from an InstanceCounter. Its six
ports are derived from that index by adding it to a fixed base per role:
- server:   18000 + index
- serf_lan: 18200 + index
- serf_wan: 18400 + index
- rpc:      18600 + index
- http:     18800 + index
- dns:      19000 + index

Collisions are avoided by arithmetic alone. Nothing probes whether a port is
actually free, and indices 200 or more apart can collide across roles.
"""

import threading
from dataclasses import dataclass

SERVER_BASE = 18000
SERF_LAN_BASE = 18200
SERF_WAN_BASE = 18400
RPC_BASE = 18600
HTTP_BASE = 18800
DNS_BASE = 19000

ROLE_SEPARATION = 200


@dataclass
class PortConfig:
    """Ports block of the agent configuration.

    Attributes:
        dns: DNS interface
        http: HTTP API
        rpc: CLI RPC endpoint
        serf_lan: LAN gossip
        serf_wan: WAN gossip
        server: Server RPC (raft)
    """

    dns: int = 0
    http: int = 0
    rpc: int = 0
    serf_lan: int = 0
    serf_wan: int = 0
    server: int = 0

    def values(self) -> list[int]:
        return [self.dns, self.http, self.rpc, self.serf_lan, self.serf_wan, self.server]


class InstanceCounter:
    """Thread-safe, strictly increasing instance counter."""

    def __init__(self, start: int = 0):
        self._value = start
        self._lock = threading.Lock()

    def next_index(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def current(self) -> int:
        return self._value


def default_ports(index: int) -> PortConfig:
    """Compute the default port set for an instance index."""
    return PortConfig(
        dns=DNS_BASE + index,
        http=HTTP_BASE + index,
        rpc=RPC_BASE + index,
        serf_lan=SERF_LAN_BASE + index,
        serf_wan=SERF_WAN_BASE + index,
        server=SERVER_BASE + index,
    )


default_counter = InstanceCounter()


def next_index() -> int:
    return default_counter.next_index()
