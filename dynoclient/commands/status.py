from __future__ import annotations

from ..protocol import Response
from .base import Command, Report


class StatusCommand(Command):
    """Check the status of a dynolog process."""

    name = "status"
    fn = "getStatus"

    def summarize(self, response: Response) -> Report:
        report = super().summarize(response)
        status = response.get("status")
        if status is not None:
            report.message = f"status = {status}"
        return report
