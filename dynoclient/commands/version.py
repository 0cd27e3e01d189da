from __future__ import annotations

from ..protocol import Response
from .base import Command, Report


class VersionCommand(Command):
    """Check the version of a dynolog process."""

    name = "version"
    fn = "getVersion"

    def summarize(self, response: Response) -> Report:
        report = super().summarize(response)
        version = response.get("version")
        if version is not None:
            report.message = f"version = {version}"
        return report
