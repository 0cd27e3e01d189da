"""Daemon commands: each one builds a request and summarizes the reply.

To add a command: subclass ``Command`` in a new module here, export it
below, and wire a subparser for it in ``dynoclient.cli_main``.
"""

from .base import Command, Report
from .dcgm import DcgmPauseCommand, DcgmResumeCommand
from .gputrace import (
    DurationTrigger,
    GpuTraceCommand,
    GpuTraceOptions,
    IterationTrigger,
    TraceConfig,
    TraceFlags,
    build_gputrace_request,
    parse_pids,
    select_trigger,
    trace_output_path,
)
from .status import StatusCommand
from .version import VersionCommand

__all__ = [
    "Command",
    "Report",
    "StatusCommand",
    "VersionCommand",
    "DcgmPauseCommand",
    "DcgmResumeCommand",
    "GpuTraceCommand",
    "GpuTraceOptions",
    "TraceConfig",
    "TraceFlags",
    "DurationTrigger",
    "IterationTrigger",
    "build_gputrace_request",
    "parse_pids",
    "select_trigger",
    "trace_output_path",
]
