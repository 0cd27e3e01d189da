"""
Exception hierarchy for the daemon client.

Per-host failures (ConnectError, ProtocolError) stay local to one
invocation; only BatchError escapes a batch run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .batch import BatchResult
    from .endpoint import Endpoint


class DynoClientError(Exception):
    """Base class for every error raised by dynoclient."""

    def __init__(self, message: str, endpoint: Optional["Endpoint"] = None) -> None:
        super().__init__(message)
        self.message = message
        self.endpoint = endpoint

    def __str__(self) -> str:
        if self.endpoint is not None:
            return f"{self.endpoint}: {self.message}"
        return self.message


class ConnectError(DynoClientError):
    """Address resolution, connect, socket I/O or timeout failure."""
    pass


class ProtocolError(DynoClientError):
    """Malformed frame or a response that is not UTF-8 JSON."""
    pass


class BatchError(DynoClientError):
    """First per-host failure of a batch, raised after every host finished."""

    def __init__(self, error: DynoClientError, result: "BatchResult") -> None:
        failed = len(result.failed)
        super().__init__(
            f"{failed} of {len(result)} hosts failed; first failure: {error}"
        )
        self.error = error
        self.result = result
