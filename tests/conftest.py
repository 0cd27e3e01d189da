"""
Shared fixtures: an in-process fake daemon speaking the framed JSON protocol.
"""

import json
import socket
import socketserver
import sys
import threading
import time
from pathlib import Path

import pytest

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dynoclient.endpoint import Endpoint
from dynoclient.protocol import encode_frame, read_frame


class _Handler(socketserver.BaseRequestHandler):
    def handle(self):
        daemon = self.server.fake
        try:
            payload = read_frame(self.request, 1 << 20)
        except Exception:
            return
        request = json.loads(payload.decode("utf-8"))
        with daemon.lock:
            daemon.requests.append(request)
        if daemon.delay:
            time.sleep(daemon.delay)
        try:
            reply = daemon.responder(request)
        except threading.BrokenBarrierError:
            return
        if reply is None:
            # Hang up without answering
            return
        if not isinstance(reply, bytes):
            reply = encode_frame(json.dumps(reply).encode("utf-8"))
        self.request.sendall(reply)


class _Server(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True


class FakeDaemon:
    """Answers each framed request with ``responder(request)``.

    The responder may return a JSON-able value (sent as one frame), raw
    bytes (sent verbatim), or None (connection closed without a reply).
    """

    def __init__(self, responder=None, delay=0.0):
        self.requests = []
        self.lock = threading.Lock()
        self.responder = responder or (lambda request: {"status": 1})
        self.delay = delay
        self.server = _Server(("127.0.0.1", 0), _Handler)
        self.server.fake = self
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self.thread.start()

    @property
    def port(self):
        return self.server.server_address[1]

    @property
    def endpoint(self):
        return Endpoint("127.0.0.1", self.port)

    def close(self):
        self.server.shutdown()
        self.server.server_close()


@pytest.fixture
def fake_daemon():
    """Factory fixture; every daemon created is shut down after the test."""
    daemons = []

    def _make(responder=None, delay=0.0):
        d = FakeDaemon(responder, delay)
        daemons.append(d)
        return d

    yield _make
    for d in daemons:
        d.close()


@pytest.fixture
def closed_port():
    """A local port nothing listens on."""
    sk = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sk.bind(("127.0.0.1", 0))
    port = sk.getsockname()[1]
    sk.close()
    return port
