from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ..protocol import Request, Response


@dataclass
class Report:
    """Human-readable outcome of one command on one host."""

    command: str
    message: str
    lines: List[str] = field(default_factory=list)
    matched: Optional[List[int]] = None
    # No matching remote process: informational, never an error
    empty: bool = False


class Command:
    """A daemon operation: builds its request, summarizes the reply.

    Subclasses are stateless apart from their (read-only) options, so one
    instance may be shared by every worker of a batch.
    """

    name = ""
    fn = ""

    def build_request(self) -> Request:
        return Request(self.fn)

    def summarize(self, response: Response) -> Report:
        return Report(
            command=self.name,
            message=f"{self.name} ok",
            lines=[f"response = {response.text}"],
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
