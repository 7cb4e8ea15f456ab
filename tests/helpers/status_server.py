"""Mock catalog endpoint for readiness tests.

StatusServer answers GET /v1/catalog/nodes with whatever leader and index
headers it is currently configured with. Tests flip those values to drive
the readiness check through its states.
"""

import json
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer


class StatusHandler(BaseHTTPRequestHandler):
    def log_message(self, format, *args):
        pass  # suppress default logging

    def do_GET(self):
        self.server.requests += 1

        if self.path == "/v1/catalog/nodes":
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            if self.server.known_leader is not None:
                self.send_header("X-Consul-KnownLeader", self.server.known_leader)
            if self.server.index is not None:
                self.send_header("X-Consul-Index", self.server.index)
            self.end_headers()
            self.wfile.write(json.dumps(self.server.nodes).encode())

        else:
            self.send_response(404)
            self.end_headers()


class StatusServer(HTTPServer):
    """HTTP server imitating an agent's catalog endpoint.

    Set known_leader or index to None to leave the header out.
    """

    allow_reuse_address = True

    def __init__(self, host: str = "127.0.0.1", port: int = 0, known_leader: str | None = "true", index: str | None = "5"):
        super().__init__((host, port), StatusHandler)
        self.known_leader = known_leader
        self.index = index
        self.nodes = [{"Node": "test-agent", "Address": "127.0.0.1"}]
        self.requests = 0

    @property
    def port(self) -> int:
        return self.server_address[1]

    def url(self, path: str = "/v1/catalog/nodes") -> str:
        return f"http://127.0.0.1:{self.port}{path}"

    def run_in_thread(self):
        thread = threading.Thread(target=self.serve_forever, daemon=True)
        thread.start()
        return thread
