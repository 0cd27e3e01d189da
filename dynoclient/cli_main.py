from __future__ import annotations

import argparse
from typing import List, Optional

from loguru import logger
from rich.console import Console

from config import settings, setup_logging
from .batch import BatchCoordinator
from .commands import (
    Command,
    DcgmPauseCommand,
    DcgmResumeCommand,
    GpuTraceCommand,
    GpuTraceOptions,
    StatusCommand,
    VersionCommand,
)
from .commands.dcgm import DEFAULT_PAUSE_SECONDS
from .endpoint import Endpoint, parse_hosts
from .errors import BatchError, DynoClientError
from .invoker import invoke
from .rich_ui import RichUI


def add_gputrace_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("--job-id", type=int, default=0, help="Job id of the application to trace")
    p.add_argument("--pids", default="0", help="List of pids to capture trace for (comma separated)")
    p.add_argument("--duration-ms", type=int, default=500, help="Duration of trace to collect in ms")
    p.add_argument("--iterations", type=int, default=-1,
                   help="Training iterations to collect, this takes precedence over duration")
    p.add_argument("--log-file", required=True, help="Log file for trace")
    p.add_argument("--profile-start-time", type=int, default=0,
                   help="Unix timestamp used for synchronized collection (milliseconds since epoch)")
    p.add_argument("--profile-start-iteration-roundup", type=int, default=1,
                   help="Start iteration roundup, starts an iteration based trace at a multiple of this value")
    p.add_argument("--process-limit", type=int, default=3, help="Max number of processes to profile")
    p.add_argument("--record-shapes", action="store_true", help="Record PyTorch operator input shapes and types")
    p.add_argument("--profile-memory", action="store_true", help="Profile PyTorch memory")
    p.add_argument("--with-stacks", action="store_true", help="Capture Python stacks in traces")
    p.add_argument("--with-flops", action="store_true", help="Annotate operators with analytical flops")
    p.add_argument("--with-modules", action="store_true", help="Capture PyTorch operator modules in traces")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dyno",
        description="Command line client for the dynolog monitoring daemon",
    )
    parser.add_argument("--hostname", default="localhost", help="Daemon host")
    parser.add_argument("--port", type=int, default=settings.default_port, help="Daemon port")
    parser.add_argument("--timeout", type=float, default=None,
                        help="Socket timeout in seconds (default: wait indefinitely)")
    parser.add_argument("--log-level", default=None, help="Log level for the log file")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Check the status of a dynolog process")
    sub.add_parser("version", help="Check the version of a dynolog process")
    add_gputrace_arguments(sub.add_parser("gputrace", help="Capture gputrace"))
    pause = sub.add_parser(
        "dcgm-pause",
        help="Pause dcgm profiling. This enables running tools like Nsight compute and avoids conflicts",
    )
    pause.add_argument("--duration-s", type=int, default=DEFAULT_PAUSE_SECONDS,
                       help="Duration to pause dcgm profiling in seconds")
    sub.add_parser("dcgm-resume", help="Resume dcgm profiling")

    batch = sub.add_parser("batch", help="Run a single command on multiple hosts")
    batch.add_argument("--hosts", action="append", required=True,
                       help="Host to run the command on, host[:port]; repeatable or comma separated")
    batch_sub = batch.add_subparsers(dest="batch_command", required=True)
    add_gputrace_arguments(batch_sub.add_parser("gputrace", help="Capture gputrace"))
    return parser


def gputrace_options(args: argparse.Namespace) -> GpuTraceOptions:
    return GpuTraceOptions(
        log_file=args.log_file,
        job_id=args.job_id,
        pids=args.pids,
        duration_ms=args.duration_ms,
        iterations=args.iterations,
        profile_start_time=args.profile_start_time,
        profile_start_iteration_roundup=args.profile_start_iteration_roundup,
        process_limit=args.process_limit,
        record_shapes=args.record_shapes,
        profile_memory=args.profile_memory,
        with_stacks=args.with_stacks,
        with_flops=args.with_flops,
        with_modules=args.with_modules,
    )


def command_from_args(args: argparse.Namespace) -> Command:
    name = args.batch_command if args.command == "batch" else args.command
    if name == "status":
        return StatusCommand()
    if name == "version":
        return VersionCommand()
    if name == "gputrace":
        return GpuTraceCommand(gputrace_options(args))
    if name == "dcgm-pause":
        return DcgmPauseCommand(args.duration_s)
    if name == "dcgm-resume":
        return DcgmResumeCommand()
    raise ValueError(f"Unknown command: {name}")


def run_single(args: argparse.Namespace, command: Command, ui: RichUI) -> int:
    endpoint = Endpoint.parse(args.hostname, args.port)
    try:
        outcome = invoke(endpoint, command, timeout=args.timeout)
    except DynoClientError as e:
        ui.show_error(str(e))
        return 1
    ui.show_outcome(outcome)
    ui.kv_table(command.name, {
        "Host": str(endpoint),
        "Request": command.fn,
        "Elapsed": f"{outcome.elapsed:.3f}s",
    })
    return 0


def run_batch(args: argparse.Namespace, command: Command, ui: RichUI) -> int:
    coordinator = BatchCoordinator(timeout=args.timeout, on_outcome=ui.show_host_outcome)
    ui.show_banner(f"batch {command.name} on {len(parse_hosts(args.hosts))} hosts")
    try:
        result = coordinator.run(args.hosts, command)
    except BatchError as e:
        ui.batch_table(e.result)
        ui.show_error(str(e))
        return 1
    ui.batch_table(result)
    ui.show_success(f"{command.name} completed on {len(result)} hosts")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        command = command_from_args(args)
        if args.command == "batch":
            # Reject bad host specs before anything is dispatched
            parse_hosts(args.hosts)
        else:
            Endpoint.parse(args.hostname, args.port)
    except ValueError as e:  # includes pydantic ValidationError
        parser.error(str(e))

    ui = RichUI(Console())
    logger.debug(f"Running {command!r}")
    if args.command == "batch":
        return run_batch(args, command, ui)
    return run_single(args, command, ui)


if __name__ == "__main__":
    raise SystemExit(main())
