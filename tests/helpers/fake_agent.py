"""Stand-in for the `consul` binary.

Installed on $PATH by the test fixtures as an executable named `consul`:

    consul agent -config-file /tmp/consulXXXX.json

It reads the generated config, copies it into the data directory as
received.json, and serves the catalog endpoint on the configured HTTP port.
$FAKE_AGENT_MODE selects the behaviour:
- ready (default): reports a known leader and index 5
- no-leader: reports no leader and index 0 forever
- exit: exits with status 3 without serving anything
"""

import argparse
import json
import os
import sys
from pathlib import Path

from tests.helpers.status_server import StatusServer


def main():
    parser = argparse.ArgumentParser(description="Fake consul agent")
    parser.add_argument("command", choices=["agent"])
    parser.add_argument("-config-file", dest="config_file", required=True)

    args = parser.parse_args()

    with open(args.config_file, encoding="utf-8") as f:
        config = json.load(f)

    data_dir = Path(config["data_dir"])
    (data_dir / "received.json").write_text(json.dumps(config), encoding="utf-8")

    mode = os.environ.get("FAKE_AGENT_MODE", "ready")
    if mode == "exit":
        print("[FakeAgent] Exiting on request")
        sys.exit(3)

    port = config.get("ports", {}).get("http", 8500)
    if mode == "no-leader":
        server = StatusServer(port=port, known_leader="false", index="0")
    else:
        server = StatusServer(port=port)

    print(f"[FakeAgent] Serving catalog on 127.0.0.1:{port} (mode: {mode})")
    server.serve_forever()


if __name__ == "__main__":
    main()
