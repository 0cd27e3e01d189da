"""
gputrace - trigger on-demand GPU (Kineto) tracing in PyTorch processes.

The daemon forwards a ``KEY=VALUE`` config block to the profiler running in
each matched process. The block layout is consumed verbatim on the remote
side, so key names and their order are fixed:

    ACTIVITIES_LOG_FILE=...
    <trigger lines>        duration- or iteration-based, never both
    <flag lines>           PROFILE_REPORT_INPUT_SHAPES ... PROFILE_WITH_MODULES
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..protocol import Request, Response
from .base import Command, Report

FN_GPUTRACE = "setKinetOnDemandRequest"


def _flag(value: bool) -> str:
    return "true" if value else "false"


@dataclass(frozen=True)
class DurationTrigger:
    """Trace for ``duration_ms`` starting at a unix time in ms (0 = now)."""

    profile_start_time: int
    duration_ms: int

    def config(self) -> str:
        return (
            f"PROFILE_START_TIME={self.profile_start_time}\n"
            f"ACTIVITIES_DURATION_MSECS={self.duration_ms}"
        )


@dataclass(frozen=True)
class IterationTrigger:
    """Trace ``iterations`` training steps, starting at a multiple of the roundup."""

    profile_start_iteration_roundup: int
    iterations: int

    def config(self) -> str:
        return (
            "PROFILE_START_ITERATION=0\n"
            f"PROFILE_START_ITERATION_ROUNDUP={self.profile_start_iteration_roundup}\n"
            f"ACTIVITIES_ITERATIONS={self.iterations}"
        )


TraceTrigger = Union[DurationTrigger, IterationTrigger]


@dataclass(frozen=True)
class TraceFlags:
    record_shapes: bool = False
    profile_memory: bool = False
    with_stacks: bool = False
    with_flops: bool = False
    with_modules: bool = False

    def config(self) -> str:
        return "\n".join([
            f"PROFILE_REPORT_INPUT_SHAPES={_flag(self.record_shapes)}",
            f"PROFILE_PROFILE_MEMORY={_flag(self.profile_memory)}",
            f"PROFILE_WITH_STACK={_flag(self.with_stacks)}",
            f"PROFILE_WITH_FLOPS={_flag(self.with_flops)}",
            f"PROFILE_WITH_MODULES={_flag(self.with_modules)}",
        ])


@dataclass(frozen=True)
class TraceConfig:
    log_file: str
    trigger: TraceTrigger
    flags: TraceFlags

    def config(self) -> str:
        return "\n".join([
            f"ACTIVITIES_LOG_FILE={self.log_file}",
            self.trigger.config(),
            self.flags.config(),
        ])


def select_trigger(
    iterations: int,
    duration_ms: int,
    profile_start_time: int,
    profile_start_iteration_roundup: int,
) -> TraceTrigger:
    """A positive iteration count wins over the duration."""
    if iterations > 0:
        return IterationTrigger(profile_start_iteration_roundup, iterations)
    return DurationTrigger(profile_start_time, duration_ms)


def parse_pids(pids: str) -> List[int]:
    """Parse ``"12,34"`` into ``[12, 34]``; ``"0"`` means any process of the job."""
    result = []
    for item in pids.split(","):
        item = item.strip()
        if not item:
            raise ValueError(f"Empty entry in pid list {pids!r}")
        try:
            result.append(int(item))
        except ValueError:
            raise ValueError(f"Invalid pid {item!r} in {pids!r}") from None
    return result


def trace_output_path(log_file: str, pid: int) -> str:
    """Per-process trace file: ``/tmp/trace.json`` -> ``/tmp/trace_<pid>.json``."""
    root, ext = os.path.splitext(log_file)
    return f"{root}_{pid}{ext}"


class GpuTraceOptions(BaseModel):
    """Options of the gputrace command, with the CLI defaults."""

    model_config = ConfigDict(frozen=True)

    log_file: str = Field(min_length=1)
    job_id: int = Field(default=0, ge=0)
    pids: str = "0"
    duration_ms: int = Field(default=500, ge=0)
    iterations: int = -1
    profile_start_time: int = Field(default=0, ge=0)
    profile_start_iteration_roundup: int = Field(default=1, ge=0)
    process_limit: int = Field(default=3, ge=0)
    record_shapes: bool = False
    profile_memory: bool = False
    with_stacks: bool = False
    with_flops: bool = False
    with_modules: bool = False

    @field_validator("pids")
    @classmethod
    def _validate_pids(cls, v: str) -> str:
        parse_pids(v)
        return v

    def trace_config(self) -> TraceConfig:
        return TraceConfig(
            log_file=self.log_file,
            trigger=select_trigger(
                self.iterations,
                self.duration_ms,
                self.profile_start_time,
                self.profile_start_iteration_roundup,
            ),
            flags=TraceFlags(
                record_shapes=self.record_shapes,
                profile_memory=self.profile_memory,
                with_stacks=self.with_stacks,
                with_flops=self.with_flops,
                with_modules=self.with_modules,
            ),
        )


def build_gputrace_request(options: GpuTraceOptions) -> Request:
    # json encoding turns the block's newlines into literal "\n" escapes
    return Request(
        FN_GPUTRACE,
        config=options.trace_config().config(),
        job_id=options.job_id,
        pids=parse_pids(options.pids),
        process_limit=options.process_limit,
    )


class GpuTraceCommand(Command):
    """Capture a GPU trace on the processes matching job id / pids."""

    name = "gputrace"
    fn = FN_GPUTRACE

    def __init__(self, options: GpuTraceOptions) -> None:
        self.options = options

    def build_request(self) -> Request:
        return build_gputrace_request(self.options)

    def summarize(self, response: Response) -> Report:
        lines = [
            "Kineto config = ",
            self.options.trace_config().config(),
            f"response = {response.text}",
        ]
        processes = response.get_list("processesMatched")
        if processes is None:
            return Report(
                command=self.name,
                message="Response did not list matched processes",
                lines=lines,
            )
        if not processes:
            return Report(
                command=self.name,
                message="No processes were matched, please check --job-id or --pids flags",
                lines=lines,
                matched=[],
                empty=True,
            )

        lines.append(f"Matched {len(processes)} processes")
        lines.append("Trace output files will be written to:")
        for pid in processes:
            lines.append(f"    {trace_output_path(self.options.log_file, pid)}")
        return Report(
            command=self.name,
            message=f"Matched {len(processes)} processes",
            lines=lines,
            matched=[p for p in processes if isinstance(p, int)],
        )

    def __repr__(self) -> str:
        return f"GpuTraceCommand({self.options!r})"
