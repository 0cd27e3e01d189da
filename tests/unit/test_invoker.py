"""
Unit tests for dynoclient/invoker.py.
"""

import pytest

from dynoclient.commands import (
    DcgmPauseCommand,
    DcgmResumeCommand,
    GpuTraceCommand,
    GpuTraceOptions,
    StatusCommand,
    VersionCommand,
)
from dynoclient.endpoint import Endpoint
from dynoclient.errors import ConnectError
from dynoclient.invoker import invoke


class TestInvoke:
    def test_status(self, fake_daemon):
        daemon = fake_daemon(lambda req: {"status": 1})
        outcome = invoke(daemon.endpoint, StatusCommand())
        assert daemon.requests == [{"fn": "getStatus"}]
        assert outcome.report.message == "status = 1"
        assert outcome.report.lines == ['response = {"status": 1}']
        assert not outcome.empty

    def test_version(self, fake_daemon):
        daemon = fake_daemon(lambda req: {"version": "0.3.0"})
        outcome = invoke(daemon.endpoint, VersionCommand())
        assert daemon.requests == [{"fn": "getVersion"}]
        assert outcome.report.message == "version = 0.3.0"

    def test_dcgm(self, fake_daemon):
        daemon = fake_daemon(lambda req: {"status": True})
        invoke(daemon.endpoint, DcgmPauseCommand(duration_s=60))
        invoke(daemon.endpoint, DcgmResumeCommand())
        assert daemon.requests == [
            {"fn": "dcgmProfPause", "duration_s": 60},
            {"fn": "dcgmProfResume"},
        ]

    def test_gputrace(self, fake_daemon):
        daemon = fake_daemon(lambda req: {"processesMatched": req["pids"]})
        options = GpuTraceOptions(log_file="/tmp/trace.json", job_id=3, pids="100,200")
        outcome = invoke(daemon.endpoint, GpuTraceCommand(options))
        request = daemon.requests[0]
        assert request["fn"] == "setKinetOnDemandRequest"
        assert request["job_id"] == 3
        assert request["pids"] == [100, 200]
        assert request["process_limit"] == 3
        assert request["config"] == options.trace_config().config()
        assert outcome.report.matched == [100, 200]
        assert "    /tmp/trace_200.json" in outcome.report.lines

    def test_gputrace_no_match(self, fake_daemon):
        daemon = fake_daemon(lambda req: {"processesMatched": []})
        options = GpuTraceOptions(log_file="/tmp/trace.json")
        outcome = invoke(daemon.endpoint, GpuTraceCommand(options))
        assert outcome.empty

    def test_connect_error_propagates(self, closed_port):
        with pytest.raises(ConnectError):
            invoke(Endpoint("127.0.0.1", closed_port), StatusCommand())
