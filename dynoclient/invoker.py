from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from .commands.base import Command, Report
from .endpoint import Endpoint
from .errors import DynoClientError
from .protocol import Response
from .transport import open_session


@dataclass
class InvocationOutcome:
    """Successful round trip against one host."""

    endpoint: Endpoint
    response: Response
    report: Report
    elapsed: float

    @property
    def empty(self) -> bool:
        return self.report.empty


def invoke(endpoint: Endpoint, command: Command, timeout: Optional[float] = None) -> InvocationOutcome:
    """Run ``command`` against one daemon: connect, one round trip, summarize.

    ConnectError and ProtocolError propagate to the caller; the socket is
    closed in every case.
    """
    request = command.build_request()
    logger.info(f"{endpoint}: sending {request.fn}")
    started = time.monotonic()
    try:
        with open_session(endpoint, timeout=timeout) as session:
            response = session.send(request)
    except DynoClientError as e:
        logger.error(f"{endpoint}: {command.name} failed: {e.message}")
        raise

    report = command.summarize(response)
    elapsed = time.monotonic() - started
    if report.empty:
        logger.info(f"{endpoint}: {report.message}")
    else:
        logger.info(f"{endpoint}: {command.name} done in {elapsed:.3f}s")
    return InvocationOutcome(endpoint, response, report, elapsed)
