"""Agent configuration document.

The agent reads a JSON file with these keys:
- bootstrap, server: booleans
- data_dir, log_level: strings
- addresses: {"http": bind address}
- ports: {"dns", "http", "rpc", "serf_lan", "serf_wan", "server"}

Keys left at a zero or empty value are omitted from the document.
"""

import copy
import json
import os
import tempfile
from collections.abc import Callable
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from testconsul.ports import PortConfig, default_ports


@dataclass
class AddressConfig:
    http: str = ""


@dataclass
class ServerConfig:
    """Configuration written for one test agent.

    Attributes:
        bootstrap: Bootstrap a single-server cluster
        server: Run the agent in server mode
        data_dir: Agent state directory
        log_level: Agent log verbosity
        addresses: Bind addresses, omitted when None
        ports: Port block, omitted when None
    """

    bootstrap: bool = False
    server: bool = False
    data_dir: str = ""
    log_level: str = ""
    addresses: AddressConfig | None = None
    ports: PortConfig | None = None

    def to_dict(self) -> dict[str, Any]:
        return _omit_empty(asdict(self))

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ServerConfig":
        addresses = data.get("addresses")
        ports = data.get("ports")
        return cls(
            bootstrap=data.get("bootstrap", False),
            server=data.get("server", False),
            data_dir=data.get("data_dir", ""),
            log_level=data.get("log_level", ""),
            addresses=AddressConfig(**addresses) if addresses is not None else None,
            ports=PortConfig(**ports) if ports is not None else None,
        )


ConfigureFunc = Callable[[ServerConfig], ServerConfig]


def _omit_empty(data: dict[str, Any]) -> dict[str, Any]:
    result = {}
    for key, value in data.items():
        if isinstance(value, dict):
            value = _omit_empty(value)
        if value in (None, False, 0, "", {}):
            continue
        result[key] = value
    return result


def default_server_config(index: int) -> ServerConfig:
    return ServerConfig(
        bootstrap=True,
        server=True,
        log_level="debug",
        ports=default_ports(index),
    )


def build_config(index: int, data_dir: str, configure: ConfigureFunc | None = None) -> ServerConfig:
    """Build the configuration for an instance.

    Defaults are computed first, then data_dir is filled in, then the
    caller's transformation is applied to a copy.

    Args:
        index: Instance index used to derive the default ports
        data_dir: Data directory created for the instance
        configure: Optional (config) -> config transformation

    Returns:
        The resolved configuration

    Raises:
        TypeError: If configure does not return a ServerConfig
    """
    config = default_server_config(index)
    config.data_dir = data_dir

    if configure is not None:
        config = configure(copy.deepcopy(config))
        if not isinstance(config, ServerConfig):
            raise TypeError(f"configure must return a ServerConfig, got {type(config).__name__}")

    return config


def write_config_file(config: ServerConfig) -> Path:
    """Write the configuration to a fresh temp file and return its path."""
    fd, path = tempfile.mkstemp(prefix="consul", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(config.to_json())
    except Exception:
        os.remove(path)
        raise
    return Path(path)
