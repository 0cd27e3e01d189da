"""
Unit tests for the gputrace payload builder in dynoclient/commands/gputrace.py.
"""

import json

import pytest
from pydantic import ValidationError

from dynoclient.commands.gputrace import (
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
from dynoclient.protocol import Response


@pytest.fixture
def options():
    return GpuTraceOptions(log_file="/tmp/test_trace.json", job_id=7, pids="11,22")


class TestTriggers:
    """Trigger policy blocks."""

    def test_duration_trigger_config(self):
        trigger = DurationTrigger(profile_start_time=1000, duration_ms=42)
        assert trigger.config() == "PROFILE_START_TIME=1000\nACTIVITIES_DURATION_MSECS=42"

    def test_iteration_trigger_config(self):
        trigger = IterationTrigger(profile_start_iteration_roundup=1000, iterations=42)
        assert trigger.config() == (
            "PROFILE_START_ITERATION=0\n"
            "PROFILE_START_ITERATION_ROUNDUP=1000\n"
            "ACTIVITIES_ITERATIONS=42"
        )

    def test_negative_iterations_select_duration(self):
        trigger = select_trigger(iterations=-1, duration_ms=42,
                                 profile_start_time=1000, profile_start_iteration_roundup=1)
        assert trigger == DurationTrigger(1000, 42)
        assert trigger.config() == "PROFILE_START_TIME=1000\nACTIVITIES_DURATION_MSECS=42"

    def test_zero_iterations_select_duration(self):
        trigger = select_trigger(0, 500, 0, 1)
        assert isinstance(trigger, DurationTrigger)

    def test_positive_iterations_select_iterations(self):
        trigger = select_trigger(iterations=42, duration_ms=500,
                                 profile_start_time=0, profile_start_iteration_roundup=1000)
        assert trigger == IterationTrigger(1000, 42)
        assert "ACTIVITIES_DURATION_MSECS" not in trigger.config()


class TestTraceConfig:
    """Full KEY=VALUE block."""

    def test_flags_block(self):
        flags = TraceFlags(record_shapes=True, profile_memory=False, with_stacks=True,
                           with_flops=False, with_modules=True)
        assert flags.config() == (
            "PROFILE_REPORT_INPUT_SHAPES=true\n"
            "PROFILE_PROFILE_MEMORY=false\n"
            "PROFILE_WITH_STACK=true\n"
            "PROFILE_WITH_FLOPS=false\n"
            "PROFILE_WITH_MODULES=true"
        )

    def test_full_block_order(self):
        config = TraceConfig(
            log_file="/tmp/test_trace.json",
            trigger=DurationTrigger(1000, 42),
            flags=TraceFlags(record_shapes=True, profile_memory=True, with_stacks=True,
                             with_flops=False, with_modules=True),
        )
        assert config.config() == (
            "ACTIVITIES_LOG_FILE=/tmp/test_trace.json\n"
            "PROFILE_START_TIME=1000\n"
            "ACTIVITIES_DURATION_MSECS=42\n"
            "PROFILE_REPORT_INPUT_SHAPES=true\n"
            "PROFILE_PROFILE_MEMORY=true\n"
            "PROFILE_WITH_STACK=true\n"
            "PROFILE_WITH_FLOPS=false\n"
            "PROFILE_WITH_MODULES=true"
        )

    def test_deterministic(self, options):
        assert options.trace_config().config() == options.trace_config().config()

    def test_options_select_iteration_block(self):
        opts = GpuTraceOptions(log_file="/tmp/t.json", iterations=5, profile_start_iteration_roundup=10)
        block = opts.trace_config().config()
        assert "ACTIVITIES_ITERATIONS=5" in block
        assert "PROFILE_START_TIME" not in block


class TestOptions:
    def test_defaults(self):
        opts = GpuTraceOptions(log_file="/tmp/t.json")
        assert opts.job_id == 0
        assert opts.pids == "0"
        assert opts.duration_ms == 500
        assert opts.iterations == -1
        assert opts.process_limit == 3
        assert opts.profile_start_iteration_roundup == 1

    def test_frozen(self, options):
        with pytest.raises(ValidationError):
            options.job_id = 3

    def test_bad_pids_rejected(self):
        with pytest.raises(ValidationError):
            GpuTraceOptions(log_file="/tmp/t.json", pids="1,x")

    def test_negative_job_id_rejected(self):
        with pytest.raises(ValidationError):
            GpuTraceOptions(log_file="/tmp/t.json", job_id=-1)


class TestRequest:
    def test_parse_pids(self):
        assert parse_pids("0") == [0]
        assert parse_pids("12, 34,56") == [12, 34, 56]
        with pytest.raises(ValueError):
            parse_pids("1,,2")

    def test_request_fields(self, options):
        request = build_gputrace_request(options)
        assert list(request) == ["fn", "config", "job_id", "pids", "process_limit"]
        assert request["fn"] == "setKinetOnDemandRequest"
        assert request["job_id"] == 7
        assert request["pids"] == [11, 22]
        assert request["process_limit"] == 3
        assert request["config"].startswith("ACTIVITIES_LOG_FILE=/tmp/test_trace.json\n")

    def test_config_newlines_escaped_on_the_wire(self, options):
        text = build_gputrace_request(options).to_json()
        assert "\\nPROFILE_START_TIME=0\\n" in text
        assert "\n" not in text
        assert json.loads(text)["config"] == options.trace_config().config()


class TestSummary:
    def test_output_path(self):
        assert trace_output_path("/tmp/test_trace.json", 123) == "/tmp/test_trace_123.json"
        assert trace_output_path("/tmp/trace", 5) == "/tmp/trace_5"

    def test_matched_processes(self, options):
        report = GpuTraceCommand(options).summarize(
            Response.from_bytes(b'{"processesMatched": [11, 22]}')
        )
        assert not report.empty
        assert report.matched == [11, 22]
        assert report.message == "Matched 2 processes"
        assert "    /tmp/test_trace_11.json" in report.lines
        assert "    /tmp/test_trace_22.json" in report.lines

    def test_no_processes_matched_is_informational(self, options):
        report = GpuTraceCommand(options).summarize(
            Response.from_bytes(b'{"processesMatched": []}')
        )
        assert report.empty
        assert report.matched == []
        assert "No processes were matched" in report.message

    def test_missing_field_is_not_an_error(self, options):
        report = GpuTraceCommand(options).summarize(Response.from_bytes(b'{"status": 1}'))
        assert not report.empty
        assert report.matched is None
