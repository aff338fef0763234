import socket
import sys
import threading
import time
from pathlib import Path

import pytest
import uvicorn

# The probe lives beside the service, not inside the package
ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT / "agent"))


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def serve():
    """Start an app under a real uvicorn server in a thread, return its base URL."""
    running = []

    def _serve(app) -> str:
        port = free_port()
        config = uvicorn.Config(app, host="127.0.0.1", port=port, log_level="warning")
        server = uvicorn.Server(config)
        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        running.append((server, thread))
        deadline = time.monotonic() + 10
        while not server.started:
            if time.monotonic() > deadline:
                raise RuntimeError("uvicorn did not start")
            time.sleep(0.01)
        return f"http://127.0.0.1:{port}"

    yield _serve

    for server, thread in running:
        server.should_exit = True
        thread.join(timeout=10)
