"""Lifecycle of a single Consul agent started for a test.

TestHarness owns the instance counter and wait policy. Its start() method
allocates an index, writes a config file, spawns `consul agent` and blocks
until the agent reports a known leader. The returned TestServer is stopped
with stop(), which kills the process and removes its data directory.
"""

import os
import shutil
import signal
import subprocess
import tempfile
from dataclasses import dataclass
from typing import Any

import requests

from testconsul.config import ConfigureFunc, ServerConfig, build_config, write_config_file
from testconsul.ports import InstanceCounter, default_counter
from testconsul.wait import WaitPolicy, wait_for_result

DEFAULT_BINARY = "consul"
DEFAULT_HTTP_PORT = 8500
STATUS_PATH = "/v1/catalog/nodes"

KNOWN_LEADER_HEADER = "X-Consul-KnownLeader"
INDEX_HEADER = "X-Consul-Index"


class TestServerError(RuntimeError):
    pass


class AgentNotFoundError(TestServerError):
    pass


class ServerStartError(TestServerError):
    pass


class ServerStoppedError(TestServerError):
    pass


class LeaderTimeoutError(TestServerError):
    def __init__(self, message: str, last_error: Exception | None = None):
        super().__init__(message)
        self.last_error = last_error
        self.stop_error: Exception | None = None


def check_leader(url: str, timeout: float = 1.0) -> tuple[bool, Exception | None]:
    """Check whether the agent behind url has a leader and a non-zero index.

    Never raises; every failure is reported as (False, err).
    """
    try:
        resp = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        return False, e
    resp.close()

    leader = resp.headers.get(KNOWN_LEADER_HEADER)
    if leader != "true":
        return False, TestServerError(f"Consul leader status: {leader!r}")

    index = resp.headers.get(INDEX_HEADER)
    if index is None:
        return False, TestServerError(f"Consul response has no {INDEX_HEADER} header")
    if index == "0":
        return False, TestServerError("Consul index is 0")

    return True, None


@dataclass
class StopResult:
    """Outcome of TestServer.stop().

    Attributes:
        pid: Process the kill signal was sent to
        error: Signal delivery failure, None when the kill succeeded
    """

    pid: int
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self):
        if self.error is not None:
            raise self.error


class TestServer:
    """Handle to one running agent."""

    __test__ = False  # not a pytest test class

    def __init__(self, process: subprocess.Popen, data_dir: str, config: ServerConfig, index: int):
        self.process = process
        self.pid = process.pid
        self.data_dir = data_dir
        self.config = config
        self.index = index
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def http_port(self) -> int:
        if self.config.ports is None or not self.config.ports.http:
            return DEFAULT_HTTP_PORT
        return self.config.ports.http

    @property
    def http_addr(self) -> str:
        return f"127.0.0.1:{self.http_port}"

    def url(self, path: str) -> str:
        return f"http://{self.http_addr}{path}"

    def wait_for_leader(self, policy: WaitPolicy | None = None):
        """Block until the agent reports a known leader and a non-zero index.

        Raises:
            ServerStoppedError: If the server was already stopped
            LeaderTimeoutError: If the wait policy is exhausted
        """
        if self._stopped:
            raise ServerStoppedError(f"Agent {self.pid} has been stopped")

        url = self.url(STATUS_PATH)

        def check():
            returncode = self.process.poll()
            if returncode is not None:
                return False, ServerStartError(f"Agent exited with code {returncode}")
            return check_leader(url)

        def give_up(err):
            raise LeaderTimeoutError(f"Agent {self.pid} did not elect a leader: {err}", err)

        wait_for_result(check, give_up, policy)

    def stop(self) -> StopResult:
        """Kill the agent and remove its data directory.

        Signal delivery failures are returned in the result rather than
        raised. The data directory is removed either way.
        """
        if self._stopped:
            return StopResult(self.pid, ServerStoppedError(f"Agent {self.pid} already stopped"))
        self._stopped = True

        error = None
        try:
            print(f"[TestServer] Killing agent {self.index} (PID: {self.pid})")
            os.kill(self.pid, signal.SIGKILL)
            self.process.wait()
        except OSError as e:
            print(f"[TestServer] Failed to kill agent {self.index} (PID: {self.pid}): {e}")
            error = e
        finally:
            shutil.rmtree(self.data_dir, ignore_errors=True)

        return StopResult(self.pid, error)

    def __enter__(self) -> "TestServer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        result = self.stop()
        if exc_type is None:
            result.raise_for_error()
        elif not result.ok:
            print(f"[TestServer] Stop of agent {self.index} (PID: {self.pid}) failed during {exc_type.__name__}: {result.error}")

    def __repr__(self) -> str:
        return f"TestServer(index={self.index}, pid={self.pid}, http={self.http_addr})"


class TestHarness:
    """Starts test agents and owns the state shared between them."""

    __test__ = False

    def __init__(
        self,
        binary: str = DEFAULT_BINARY,
        wait_policy: WaitPolicy | None = None,
        counter: InstanceCounter | None = None,
    ):
        """Initialize harness.

        Args:
            binary: Agent executable, looked up on $PATH
            wait_policy: Readiness bound used by start()
            counter: Instance counter used to derive ports
        """
        self.binary = binary
        self.wait_policy = wait_policy or WaitPolicy()
        self.counter = counter or InstanceCounter()

    @classmethod
    def from_env(cls, **kwargs: Any) -> "TestHarness":
        """Build a harness, honouring $TESTCONSUL_BINARY and the wait policy variables."""
        kwargs.setdefault("binary", os.environ.get("TESTCONSUL_BINARY", DEFAULT_BINARY))
        kwargs.setdefault("wait_policy", WaitPolicy.from_env())
        return cls(**kwargs)

    def start(self, configure: ConfigureFunc | None = None) -> TestServer:
        """Start an agent and wait for it to elect itself leader.

        Args:
            configure: Optional (config) -> config transformation applied
                after the defaults are computed

        Returns:
            Handle to the running agent

        Raises:
            AgentNotFoundError: If the binary is not on $PATH
            ServerStartError: If setup or spawning fails
            LeaderTimeoutError: If the agent never becomes ready
            ValueError: If the wait policy is invalid
        """
        self.wait_policy.validate()

        binary_path = shutil.which(self.binary)
        if not binary_path:
            print(f"[Harness] {self.binary} not found on $PATH")
            raise AgentNotFoundError(f"{self.binary} not found on $PATH")

        index = self.counter.next_index()

        try:
            data_dir = tempfile.mkdtemp(prefix="consul")
        except OSError as e:
            raise ServerStartError(f"Failed creating data dir: {e}") from e

        try:
            config = build_config(index, data_dir, configure)
            config_file = write_config_file(config)
        except OSError as e:
            shutil.rmtree(data_dir, ignore_errors=True)
            raise ServerStartError(f"Failed writing config file: {e}") from e
        except Exception:
            shutil.rmtree(data_dir, ignore_errors=True)
            raise

        try:
            try:
                process = subprocess.Popen([binary_path, "agent", "-config-file", str(config_file)])
            except OSError as e:
                shutil.rmtree(data_dir, ignore_errors=True)
                raise ServerStartError(f"Failed starting {binary_path}: {e}") from e

            server = TestServer(process, data_dir, config, index)
            print(f"[Harness] Started agent {index} (PID: {server.pid}, HTTP: {server.http_addr})")

            try:
                server.wait_for_leader(self.wait_policy)
            except BaseException as e:
                result = server.stop()
                if not result.ok:
                    print(f"[Harness] Cleanup of agent {index} (PID: {result.pid}) failed: {result.error}")
                    if isinstance(e, LeaderTimeoutError):
                        e.stop_error = result.error
                raise

            print(f"[Harness] Agent {index} has a leader")
            return server
        finally:
            config_file.unlink(missing_ok=True)


_default_harness: TestHarness | None = None


def default_harness() -> TestHarness:
    global _default_harness
    if _default_harness is None:
        _default_harness = TestHarness.from_env(counter=default_counter)
    return _default_harness


def new_test_server(configure: ConfigureFunc | None = None) -> TestServer:
    """Start an agent using the process-wide default harness."""
    return default_harness().start(configure)
