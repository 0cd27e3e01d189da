"""Pause/resume DCGM profiling, e.g. to run Nsight Compute without conflicts."""

from __future__ import annotations

from ..protocol import Request
from .base import Command

DEFAULT_PAUSE_SECONDS = 300


class DcgmPauseCommand(Command):
    name = "dcgm-pause"
    fn = "dcgmProfPause"

    def __init__(self, duration_s: int = DEFAULT_PAUSE_SECONDS) -> None:
        self.duration_s = int(duration_s)

    def build_request(self) -> Request:
        return Request(self.fn, duration_s=self.duration_s)

    def __repr__(self) -> str:
        return f"DcgmPauseCommand(duration_s={self.duration_s})"


class DcgmResumeCommand(Command):
    name = "dcgm-resume"
    fn = "dcgmProfResume"
