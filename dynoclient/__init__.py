"""Client for the dynolog monitoring daemon.

One request per TCP connection, framed JSON in both directions, and a
batch mode that runs one command on many daemons concurrently.
"""

from .batch import BatchCoordinator, BatchResult, BatchState, HostOutcome
from .endpoint import Endpoint, parse_hosts
from .errors import BatchError, ConnectError, DynoClientError, ProtocolError
from .invoker import InvocationOutcome, invoke
from .protocol import Request, Response
from .transport import Session, open_session

__all__ = [
    "BatchCoordinator",
    "BatchResult",
    "BatchState",
    "HostOutcome",
    "Endpoint",
    "parse_hosts",
    "DynoClientError",
    "ConnectError",
    "ProtocolError",
    "BatchError",
    "InvocationOutcome",
    "invoke",
    "Request",
    "Response",
    "Session",
    "open_session",
]
