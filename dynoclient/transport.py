from __future__ import annotations

import socket
from typing import Optional

from loguru import logger

from config import settings
from .endpoint import Endpoint
from .errors import ConnectError, ProtocolError
from .protocol import Request, Response, encode_frame, read_frame


class Session:
    """One TCP connection to one daemon, good for a single round trip.

    Use as a context manager; the socket is closed on exit whether the
    round trip succeeded or not.
    """

    def __init__(self, endpoint: Endpoint, sock: socket.socket) -> None:
        self.endpoint = endpoint
        self.sk: Optional[socket.socket] = sock
        self._used = False

    def send(self, request: Request) -> Response:
        """Send ``request`` and block until the framed response arrives."""
        if self.sk is None:
            raise RuntimeError(f"Session to {self.endpoint} is closed")
        if self._used:
            raise RuntimeError(f"Session to {self.endpoint} already served a request")
        self._used = True

        payload = request.to_json().encode("utf-8")
        logger.debug(f"{self.endpoint} <- {request.fn} ({len(payload)} bytes)")
        try:
            self.sk.sendall(encode_frame(payload))
            data = read_frame(self.sk, settings.max_frame_bytes)
        except ProtocolError as e:
            e.endpoint = self.endpoint
            raise
        except OSError as e:
            # socket.timeout is an OSError subclass
            raise ConnectError(f"I/O error during {request.fn}: {e}", self.endpoint) from e
        logger.debug(f"{self.endpoint} -> {len(data)} bytes")

        try:
            return Response.from_bytes(data)
        except ProtocolError as e:
            e.endpoint = self.endpoint
            raise

    def close(self) -> None:
        if self.sk is not None:
            try:
                self.sk.close()
            finally:
                self.sk = None

    def __enter__(self):
        return self

    def __exit__(self, *excinfo):
        self.close()
        return False


def open_session(endpoint: Endpoint, timeout: Optional[float] = None) -> Session:
    """Connect to ``endpoint``; raises ConnectError on resolve/connect failure.

    ``timeout`` bounds the connect and every later socket operation; it
    defaults to ``settings.socket_timeout`` (None blocks indefinitely).
    """
    if timeout is None:
        timeout = settings.socket_timeout
    try:
        sk = socket.create_connection(endpoint.address(), timeout=timeout)
    except socket.gaierror as e:
        raise ConnectError(f"Cannot resolve host: {e}", endpoint) from e
    except UnicodeError as e:
        # IDNA encoding rejects empty or over-long labels ("node..cluster")
        raise ConnectError(f"Cannot resolve host: {e}", endpoint) from e
    except OSError as e:
        raise ConnectError(f"Cannot connect: {e}", endpoint) from e
    logger.debug(f"Connected to {endpoint}")
    return Session(endpoint, sk)
